"""
Shared request dependencies.

Auth dependencies live in helpdesk.routers.auth_deps and are re-exported
here; the mail client and notifier are resolved from application state.
"""
from fastapi import Depends, Request

from helpdesk.core.config import settings
from helpdesk.routers.auth_deps import (
    get_current_user,
    require_role,
    require_agent,
    require_admin,
)
from helpdesk.services.notification import Mailer, NotificationService


def get_mailer(request: Request) -> Mailer:
    """The mail client created in the application lifespan."""
    return request.app.state.mailer


def get_notifier(mailer: Mailer = Depends(get_mailer)) -> NotificationService:
    return NotificationService(mailer, support_email=settings.mail.support_email)


__all__ = [
    "get_current_user",
    "require_role",
    "require_agent",
    "require_admin",
    "get_mailer",
    "get_notifier",
]
