from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from helpdesk.core.permissions import Action, Resource, ensure_allowed
from helpdesk.core.schemas import PageParams
from helpdesk.models.knowledge import KnowledgeArticle
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import EmailPreference, User, UserRole
from helpdesk.schemas.user import PasswordChange, ProfileUpdate, UserAdminUpdate
from helpdesk.services import auth as auth_service
from helpdesk.services.base import BaseService
from helpdesk.services.tickets import status_breakdown


class UserService(BaseService):
    """Account administration and self-service profile changes."""

    def __init__(self, db: Session, current_user: User):
        super().__init__(db, current_user)

    def _get(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def _ensure_email_free(self, email: str, user_id: int) -> str:
        email = email.lower()
        taken = self.db.query(User.id).filter(User.email == email, User.id != user_id).first()
        if taken:
            raise ConflictError("Email is already taken")
        return email

    def _save_account(self, user: User) -> None:
        try:
            self._commit(user)
        except IntegrityError:
            # Another request claimed the address after the pre-check
            raise ConflictError("Email is already taken")

    # --- Admin -------------------------------------------------------------

    def list(
        self,
        params: PageParams,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Tuple[User, Dict[str, int]]], int]:
        ensure_allowed(
            self.current_user, Resource.ACCOUNT, Action.LIST_ALL,
            message="Access denied. Admin privileges required.",
        )
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        stats = status_breakdown(self.db, [u.id for u in users])
        return [(u, stats[u.id]) for u in users], total

    def detail(self, user_id: int) -> Tuple[User, Dict[str, int], List[Ticket]]:
        ensure_allowed(self.current_user, Resource.ACCOUNT, Action.READ, owner_id=user_id)
        user = self._get(user_id)
        recent = (
            self.db.query(Ticket)
            .filter(Ticket.user_id == user.id)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .limit(10)
            .all()
        )
        return user, status_breakdown(self.db, [user.id])[user.id], recent

    def update(self, user_id: int, data: UserAdminUpdate) -> User:
        ensure_allowed(
            self.current_user, Resource.ACCOUNT, Action.MANAGE,
            message="Access denied. Admin privileges required.",
        )
        user = self._get(user_id)
        changes: Dict[str, Any] = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            raise ValidationError("No valid fields provided for update")

        if user.id == self.current_user.id:
            if "role" in changes and changes["role"] != user.role:
                raise ValidationError("You cannot change your own role")
            if changes.get("is_active") is False:
                raise ValidationError("You cannot deactivate your own account")

        if "email" in changes:
            changes["email"] = self._ensure_email_free(changes["email"], user.id)
        if "name" in changes:
            changes["name"] = changes["name"].strip()

        demoted = changes.get("role") == UserRole.USER and user.role != UserRole.USER
        for field, value in changes.items():
            setattr(user, field, value)

        if demoted or changes.get("is_active") is False:
            # Only active staff may hold tickets
            released = (
                self.db.query(Ticket)
                .filter(Ticket.assigned_agent_id == user.id)
                .update({Ticket.assigned_agent_id: None}, synchronize_session=False)
            )
            if released:
                self.log_info("Released tickets held by account", target_user_id=user.id, tickets=released)

        self._save_account(user)
        self.log_info("User updated by admin", target_user_id=user.id, fields=sorted(changes))
        return user

    def delete(self, user_id: int) -> None:
        ensure_allowed(
            self.current_user, Resource.ACCOUNT, Action.MANAGE,
            message="Access denied. Admin privileges required.",
        )
        if user_id == self.current_user.id:
            raise ValidationError("You cannot delete your own account")
        user = self._get(user_id)

        ticket_count = self.db.query(func.count(Ticket.id)).filter(Ticket.user_id == user.id).scalar()
        if ticket_count:
            raise ConflictError(
                f"Cannot delete user with {ticket_count} associated tickets. "
                "Please reassign or delete tickets first.",
                details={"tickets": ticket_count},
            )
        article_count = (
            self.db.query(func.count(KnowledgeArticle.id)).filter(KnowledgeArticle.created_by == user.id).scalar()
        )
        if article_count:
            raise ConflictError(
                f"Cannot delete user with {article_count} knowledge articles.",
                details={"articles": article_count},
            )

        self.db.query(Ticket).filter(Ticket.assigned_agent_id == user.id).update(
            {Ticket.assigned_agent_id: None}, synchronize_session=False
        )
        self.db.delete(user)
        self._commit()
        self.log_info("User deleted", target_user_id=user_id)

    def agents(self) -> List[User]:
        ensure_allowed(self.current_user, Resource.TICKET, Action.TAKE, message="Access denied")
        return (
            self.db.query(User)
            .filter(User.role.in_([UserRole.AGENT, UserRole.ADMIN]), User.is_active.is_(True))
            .order_by(User.name.asc())
            .all()
        )

    # --- Self service ------------------------------------------------------

    def update_profile(self, data: ProfileUpdate) -> User:
        user = self.current_user
        user.email = self._ensure_email_free(data.email, user.id)
        user.name = data.name.strip()
        self._save_account(user)
        self.log_info("Profile updated")
        return user

    def update_preferences(self, preference: EmailPreference) -> User:
        user = self.current_user
        user.email_notifications = preference
        self._commit(user)
        self.log_info("Email preferences updated", preference=preference.value)
        return user

    def change_password(self, data: PasswordChange) -> None:
        user = self.current_user
        if not auth_service.verify_password(data.current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")
        user.hashed_password = auth_service.get_password_hash(data.new_password)
        self._commit()
        self.log_info("Password changed")
