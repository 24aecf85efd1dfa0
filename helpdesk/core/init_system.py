import logging
from helpdesk.core.config import settings
from helpdesk.database import SessionLocal
from helpdesk.models.user import User, UserRole
from helpdesk.services import auth as auth_service

logger = logging.getLogger(__name__)

def init_system_data():
    """
    Creates the first administrator from BOOTSTRAP_ADMIN_EMAIL /
    BOOTSTRAP_ADMIN_PASSWORD when no admin account exists yet.
    """
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        logger.info("No bootstrap admin configured; skipping system initialization.")
        return

    db = SessionLocal()
    try:
        admin_count = db.query(User).filter(User.role == UserRole.ADMIN).count()
        if admin_count:
            logger.info(f"System initialization check: {admin_count} admin account(s) found.")
            return

        email = settings.bootstrap_admin_email.lower()
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            existing.role = UserRole.ADMIN
            existing.is_active = True
            logger.info(f"Promoted existing account {email} to admin")
        else:
            db.add(User(
                name=settings.bootstrap_admin_name,
                email=email,
                hashed_password=auth_service.get_password_hash(settings.bootstrap_admin_password),
                role=UserRole.ADMIN,
                is_active=True,
            ))
            logger.info(f"Created bootstrap admin: {email}")
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
    finally:
        db.close()
