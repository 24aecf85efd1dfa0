import sys

from helpdesk.database import SessionLocal, init_db
from helpdesk.models.user import User, UserRole
from helpdesk.services import auth as auth_service

def seed(admin_email="admin@example.com", password="admin123"):
    init_db()
    db = SessionLocal()
    try:
        admin_email = admin_email.lower()
        admin = db.query(User).filter(User.email == admin_email).first()

        if not admin:
            admin = User(
                name="Admin User",
                email=admin_email,
                hashed_password=auth_service.get_password_hash(password),
                role=UserRole.ADMIN,
                is_active=True
            )
            db.add(admin)
            db.commit()
            print(f"Admin user {admin_email} created with password '{password}'")
        else:
            # Reset password and make sure the account can log in as admin
            admin.hashed_password = auth_service.get_password_hash(password)
            admin.role = UserRole.ADMIN
            admin.is_active = True
            db.commit()
            print(f"Admin user {admin_email} already exists. Password reset to '{password}'")

    finally:
        db.close()

if __name__ == "__main__":
    seed(*sys.argv[1:3])
