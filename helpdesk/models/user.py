"""
User Model with role-based access.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from helpdesk.database import Base


class UserRole(str, enum.Enum):
    """
    User roles with hierarchical permissions.

    Hierarchy (least to most permissions):
    - USER: Submits and follows their own tickets
    - AGENT: Triages, takes and resolves any ticket
    - ADMIN: Everything an agent can do plus user management and assignment
    """
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, other: "UserRole") -> bool:
        return self.rank >= other.rank


_ROLE_RANK = {UserRole.USER: 0, UserRole.AGENT: 1, UserRole.ADMIN: 2}


class EmailPreference(str, enum.Enum):
    """Which ticket emails a user wants to receive."""
    ALL = "all"
    IMPORTANT = "important"
    NONE = "none"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    email_notifications = Column(Enum(EmailPreference), default=EmailPreference.ALL, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    tickets = relationship("Ticket", foreign_keys="[Ticket.user_id]", back_populates="submitter")
    assigned_tickets = relationship("Ticket", foreign_keys="[Ticket.assigned_agent_id]", back_populates="assigned_agent")
    articles = relationship("KnowledgeArticle", back_populates="creator")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"
