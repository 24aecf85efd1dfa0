"""
Fill a local database with sample accounts, tickets and knowledge articles.

Drops and recreates every table first. Never point this at production.
"""
from datetime import datetime, timezone

from helpdesk.core.config import settings
from helpdesk.database import Base, SessionLocal, engine, init_db
from helpdesk.models.knowledge import KnowledgeArticle, KnowledgeCategory
from helpdesk.models.ticket import Ticket, TicketPriority, TicketStatus
from helpdesk.models.user import User, UserRole
from helpdesk.services import auth as auth_service

SAMPLE_PASSWORD = "password123"

USERS = [
    ("John Doe", "john@example.com", UserRole.USER),
    ("Jane Smith", "jane@example.com", UserRole.USER),
    ("Support Agent", "agent@example.com", UserRole.AGENT),
    ("Admin User", "admin@example.com", UserRole.ADMIN),
]

# (title, description, priority, status, submitter email, agent email, resolution notes)
TICKETS = [
    (
        "Login Issues",
        "I'm having trouble logging into my account. I keep getting an error message saying "
        "'Invalid credentials' even though I'm sure my password is correct.",
        TicketPriority.HIGH, TicketStatus.OPEN, "john@example.com", None, None,
    ),
    (
        "Password Reset Not Working",
        "I tried to reset my password but I'm not receiving the reset email. "
        "I checked my spam folder and it's not there either.",
        TicketPriority.MEDIUM, TicketStatus.IN_PROGRESS, "jane@example.com", "agent@example.com", None,
    ),
    (
        "Account Locked",
        "My account seems to be locked and I can't access any features. "
        "This happened after I tried to log in multiple times.",
        TicketPriority.URGENT, TicketStatus.RESOLVED, "john@example.com", "admin@example.com",
        "Account has been unlocked. User was advised to use the correct password "
        "and contact support if issues persist.",
    ),
    (
        "Feature Request - Dark Mode",
        "It would be great to have a dark mode option for the application. "
        "The current light theme is too bright for night usage.",
        TicketPriority.LOW, TicketStatus.OPEN, "jane@example.com", None, None,
    ),
    (
        "Mobile App Crashes",
        "The mobile app keeps crashing when I try to view my tickets. "
        "This happens on both iOS and Android devices.",
        TicketPriority.HIGH, TicketStatus.IN_PROGRESS, "john@example.com", "agent@example.com", None,
    ),
]

# (title, content, keywords, category, creator email, helpful count)
ARTICLES = [
    (
        "How to Reset Your Password",
        "If you've forgotten your password:\n\n"
        "1. Go to the login page\n"
        "2. Click on \"Forgot Password\"\n"
        "3. Enter your email address\n"
        "4. Follow the link in the email and choose a new password\n\n"
        "If the email does not arrive within 10 minutes, check your spam folder or contact support.",
        ["password", "reset", "forgot", "login", "email"],
        KnowledgeCategory.ACCOUNT, "agent@example.com", 15,
    ),
    (
        "Common Login Issues and Solutions",
        "\"Invalid Credentials\": make sure Caps Lock is off and check the email address for typos.\n\n"
        "Account locked: wait 15 minutes before trying again, then contact support if it persists.\n\n"
        "\"User Not Found\": verify the address you signed up with, or create an account.",
        ["login", "credentials", "locked", "error", "troubleshooting"],
        KnowledgeCategory.TECHNICAL, "admin@example.com", 23,
    ),
    (
        "Understanding Ticket Priorities",
        "Low: general questions and feature requests, answered in 2-3 business days.\n"
        "Medium: minor issues that don't block work, 1-2 business days.\n"
        "High: important issues affecting work, same day.\n"
        "Urgent: critical issues blocking all work, within 2 hours.",
        ["priority", "urgent", "high", "medium", "low", "response time"],
        KnowledgeCategory.GENERAL, "agent@example.com", 8,
    ),
    (
        "Billing and Payment Information",
        "We accept credit cards, PayPal and bank transfers for enterprise accounts.\n\n"
        "Subscriptions renew on the same date each period and you get an email 7 days before renewal.\n\n"
        "New subscriptions carry a 30-day money-back guarantee.",
        ["billing", "payment", "refund", "subscription", "credit card"],
        KnowledgeCategory.BILLING, "admin@example.com", 12,
    ),
]

def seed():
    if settings.is_production:
        raise SystemExit("Refusing to seed a production database")

    Base.metadata.drop_all(bind=engine)
    init_db()
    print("Database tables created")

    db = SessionLocal()
    try:
        hashed = auth_service.get_password_hash(SAMPLE_PASSWORD)
        users = {}
        for name, email, role in USERS:
            users[email] = User(name=name, email=email, hashed_password=hashed, role=role, is_active=True)
        db.add_all(users.values())
        db.flush()
        print(f"Created users: {len(users)}")

        for title, description, priority, status, submitter, agent, notes in TICKETS:
            db.add(Ticket(
                title=title,
                description=description,
                priority=priority,
                status=status,
                user_id=users[submitter].id,
                assigned_agent_id=users[agent].id if agent else None,
                resolution_notes=notes,
                resolved_at=datetime.now(timezone.utc) if status == TicketStatus.RESOLVED else None,
            ))
        print(f"Created tickets: {len(TICKETS)}")

        for title, content, keywords, category, creator, helpful in ARTICLES:
            article = KnowledgeArticle(
                title=title,
                content=content,
                category=category,
                created_by=users[creator].id,
                helpful_count=helpful,
            )
            article.keywords = keywords
            db.add(article)
        print(f"Created knowledge articles: {len(ARTICLES)}")

        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print("\nSample logins (password: %s):" % SAMPLE_PASSWORD)
    for name, email, role in USERS:
        print(f"- {email} ({role.value})")

if __name__ == "__main__":
    seed()
