from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.models.ticket import TicketPriority, TicketStatus
from helpdesk.schemas.auth import UserSummary

MIN_TITLE_LENGTH = 5
MIN_DESCRIPTION_LENGTH = 10


def _check_title(v: str) -> str:
    v = v.strip()
    if len(v) < MIN_TITLE_LENGTH:
        raise ValueError(f"Title must be at least {MIN_TITLE_LENGTH} characters long")
    return v


def _check_description(v: str) -> str:
    v = v.strip()
    if len(v) < MIN_DESCRIPTION_LENGTH:
        raise ValueError(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters long")
    return v


class TicketCreate(BaseModel):
    """Submitter input. Status and ownership are never taken from the body."""
    title: str = Field(max_length=200)
    description: str = Field(max_length=2000)
    priority: TicketPriority = TicketPriority.MEDIUM

    @field_validator("title")
    @classmethod
    def title_length(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def description_length(cls, v: str) -> str:
        return _check_description(v)


class TicketUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    resolution_notes: Optional[str] = None
    assigned_agent_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_length(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_title(v)

    @field_validator("description")
    @classmethod
    def description_length(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_description(v)


class TicketAssign(BaseModel):
    assigned_agent_id: Optional[int] = None


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    resolution_notes: Optional[str] = None
    user_id: int
    assigned_agent_id: Optional[int] = None
    submitter: UserSummary
    assigned_agent: Optional[UserSummary] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TicketBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: TicketStatus
    priority: TicketPriority
    created_at: Optional[datetime] = None


class TicketListResponse(BaseModel):
    success: bool = True
    tickets: List[TicketResponse]
    total: int
    page: int
    total_pages: int


class TicketActionResponse(BaseModel):
    success: bool = True
    message: str
    ticket: TicketResponse
