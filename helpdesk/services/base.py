import logging
from typing import Optional

from sqlalchemy.orm import Session

from helpdesk.models.user import User


class BaseService:
    """Common plumbing for services bound to one request's session and caller."""

    def __init__(self, db: Session, current_user: Optional[User] = None):
        self.db = db
        self.current_user = current_user
        self._logger = logging.getLogger(self.__class__.__module__)

    def _commit(self, *instances) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for instance in instances:
            self.db.refresh(instance)

    def log_info(self, message: str, **extra) -> None:
        self._logger.info(message, extra=self._context(extra))

    def _context(self, extra: dict) -> dict:
        if self.current_user is not None:
            extra.setdefault("user_id", self.current_user.id)
        return extra
