from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from typing import Optional
from helpdesk.core.config import settings
from helpdesk.models.user import UserRole, EmailPreference
from datetime import datetime

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str

class UserResponse(UserSummary):
    role: UserRole
    email_notifications: EmailPreference
    is_active: bool
    created_at: Optional[datetime] = None

class SignupRequest(BaseModel):
    name: str = Field(max_length=100)
    email: EmailStr
    password: str = Field(min_length=settings.min_password_length)
    role: UserRole = UserRole.USER

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserResponse

class VerifyResponse(BaseModel):
    success: bool = True
    user: UserResponse
