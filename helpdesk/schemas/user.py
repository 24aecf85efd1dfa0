from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from helpdesk.core.config import settings
from helpdesk.core.schemas import Pagination
from helpdesk.models.user import UserRole, EmailPreference
from helpdesk.schemas.auth import UserResponse, UserSummary
from helpdesk.schemas.ticket import TicketBrief

class TicketStats(BaseModel):
    total_tickets: int = 0
    open_tickets: int = 0
    in_progress_tickets: int = 0
    resolved_tickets: int = 0
    closed_tickets: int = 0

class UserWithStats(UserResponse):
    ticket_stats: TicketStats

class UserDetail(UserWithStats):
    recent_tickets: List[TicketBrief] = []

class UserListResponse(BaseModel):
    success: bool = True
    data: List[UserWithStats]
    pagination: Pagination

class UserAdminUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

class ProfileUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr

class PreferencesUpdate(BaseModel):
    email_notifications: EmailPreference

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=settings.min_password_length)

class AgentListResponse(BaseModel):
    success: bool = True
    agents: List[UserSummary]

class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserResponse
