# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, ticket, knowledge

# Explicit class exports for cleaner imports
from .user import User, UserRole, EmailPreference
from .ticket import Ticket, TicketStatus, TicketPriority
from .knowledge import KnowledgeArticle, KnowledgeCategory

__all__ = [
    "User",
    "UserRole",
    "EmailPreference",
    "Ticket",
    "TicketStatus",
    "TicketPriority",
    "KnowledgeArticle",
    "KnowledgeCategory",
]
