from typing import List
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from helpdesk.database import Base


class KnowledgeCategory(str, enum.Enum):
    GENERAL = "general"
    TECHNICAL = "technical"
    BILLING = "billing"
    ACCOUNT = "account"
    OTHER = "other"


class KnowledgeArticle(Base):
    __tablename__ = "knowledge_base"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    content = Column(Text, nullable=False)
    # Comma-separated; use the `keywords` property
    keywords_text = Column("keywords", Text, nullable=True)
    category = Column(Enum(KnowledgeCategory), default=KnowledgeCategory.GENERAL, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    helpful_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User", back_populates="articles")

    @property
    def keywords(self) -> List[str]:
        if not self.keywords_text:
            return []
        return [k for k in self.keywords_text.split(",") if k]

    @keywords.setter
    def keywords(self, value: List[str]) -> None:
        cleaned = [k.strip() for k in (value or []) if k and k.strip()]
        self.keywords_text = ",".join(cleaned) or None

    def __repr__(self):
        return f"<KnowledgeArticle #{self.id} {self.title!r}>"
