import pytest
import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from helpdesk.database import Base, get_db
from helpdesk.dependencies import get_mailer
from helpdesk.main import app
from helpdesk.models.user import EmailPreference, User, UserRole
from helpdesk.services import auth as auth_service
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# pysqlite needs explicit BEGIN for SAVEPOINT-based test isolation
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")

# Service commits release a savepoint instead of the outer test transaction
TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    join_transaction_mode="create_savepoint",
)

DEFAULT_PASSWORD = "Password123!"


class FakeMailer:
    """Stands in for the SMTP client; records every message instead of sending."""

    def __init__(self, enabled=True):
        self.enabled = enabled
        self.sender = "Helpdesk <noreply@example.com>"
        self.sent = []

    def send(self, message):
        self.sent.append(message)

    def recipients(self):
        return [m["To"] for m in self.sent]


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="session")
def default_password():
    return DEFAULT_PASSWORD

@pytest.fixture(scope="session")
def password_hash():
    # bcrypt is slow on purpose; hash once per session
    return auth_service.get_password_hash(DEFAULT_PASSWORD)

@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def make_user(db_session, password_hash):
    """Factory for persisted accounts."""
    def _make_user(
        email,
        role=UserRole.USER,
        name=None,
        is_active=True,
        email_notifications=EmailPreference.ALL,
    ):
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            hashed_password=password_hash,
            role=role,
            is_active=is_active,
            email_notifications=email_notifications,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user

@pytest.fixture(scope="function")
def user(make_user):
    return make_user("alice@example.com", name="Alice User")

@pytest.fixture(scope="function")
def other_user(make_user):
    return make_user("bob@example.com", name="Bob User")

@pytest.fixture(scope="function")
def agent(make_user):
    return make_user("carol@example.com", role=UserRole.AGENT, name="Carol Agent")

@pytest.fixture(scope="function")
def other_agent(make_user):
    return make_user("dave@example.com", role=UserRole.AGENT, name="Dave Agent")

@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user("admin@example.com", role=UserRole.ADMIN, name="System Admin")

@pytest.fixture(scope="function")
def auth_headers():
    """Helper fixture to build bearer headers for a user."""
    def _auth_headers(user):
        return {"Authorization": f"Bearer {auth_service.create_token_for(user)}"}
    return _auth_headers

@pytest.fixture(scope="function")
def mailer():
    return FakeMailer()

@pytest.fixture(scope="function")
def client(db_session, mailer):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
def create_ticket(client, auth_headers):
    """Submit a ticket through the API and return its JSON."""
    counter = {"n": 0}

    def _create_ticket(owner, title=None, description="Something is not working as expected", priority="medium"):
        counter["n"] += 1
        response = client.post(
            "/api/tickets",
            json={
                "title": title or f"Problem report {counter['n']}",
                "description": description,
                "priority": priority,
            },
            headers=auth_headers(owner),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create_ticket
