from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.schemas import MessageResponse, PageParams, Pagination
from helpdesk.database import get_db
from helpdesk.dependencies import get_current_user, require_admin, require_agent
from helpdesk.models.user import User, UserRole
from helpdesk.schemas.auth import UserResponse, UserSummary
from helpdesk.schemas.ticket import TicketBrief
from helpdesk.schemas.user import (
    AgentListResponse,
    PasswordChange,
    PreferencesUpdate,
    ProfileUpdate,
    TicketStats,
    UserAdminUpdate,
    UserDetail,
    UserEnvelope,
    UserListResponse,
    UserWithStats,
)
from helpdesk.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _with_stats(user: User, stats) -> UserWithStats:
    return UserWithStats(
        **UserResponse.model_validate(user).model_dump(),
        ticket_stats=TicketStats(**stats),
    )


@router.get("", response_model=UserListResponse)
def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(require_admin()),
    db: Session = Depends(get_db),
):
    params = PageParams(page=page, limit=limit)
    rows, total = UserService(db, current_user).list(params, role=role, search=search)
    return UserListResponse(
        data=[_with_stats(user, stats) for user, stats in rows],
        pagination=Pagination.build(total, params),
    )


@router.get("/agents", response_model=AgentListResponse)
def list_agents(current_user: User = Depends(require_agent()), db: Session = Depends(get_db)):
    """Active agents and admins, for assignment pickers."""
    agents = UserService(db, current_user).agents()
    return AgentListResponse(agents=[UserSummary.model_validate(a) for a in agents])


@router.get("/profile", response_model=UserEnvelope)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/profile", response_model=UserEnvelope)
def update_profile(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = UserService(db, current_user).update_profile(profile)
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.model_validate(user))


@router.put("/preferences", response_model=UserEnvelope)
def update_preferences(
    preferences: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = UserService(db, current_user).update_preferences(preferences.email_notifications)
    return UserEnvelope(message="Preferences updated successfully", user=UserResponse.model_validate(user))


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    passwords: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UserService(db, current_user).change_password(passwords)
    return MessageResponse(message="Password changed successfully")


@router.get("/{user_id}", response_model=UserDetail)
def get_user(user_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Admins can read anyone; everyone else only themselves."""
    user, stats, recent = UserService(db, current_user).detail(user_id)
    return UserDetail(
        **_with_stats(user, stats).model_dump(),
        recent_tickets=[TicketBrief.model_validate(t) for t in recent],
    )


@router.put("/{user_id}", response_model=UserEnvelope)
def update_user(
    user_id: int,
    user_data: UserAdminUpdate,
    current_user: User = Depends(require_admin()),
    db: Session = Depends(get_db),
):
    user = UserService(db, current_user).update(user_id, user_data)
    return UserEnvelope(message="User updated successfully", user=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, current_user: User = Depends(require_admin()), db: Session = Depends(get_db)):
    UserService(db, current_user).delete(user_id)
    return MessageResponse(message="User deleted successfully")
