import pytest
from datetime import timedelta
from fastapi import status
from helpdesk.models.user import User, UserRole
from helpdesk.services import auth as auth_service


def test_register_returns_token_and_user(client, db_session):
    response = client.post("/api/auth/register", json={
        "name": "New Person",
        "email": "New.Person@Example.com",
        "password": "secret1",
    })
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new.person@example.com"
    assert data["user"]["role"] == "user"
    assert "hashed_password" not in data["user"]

    saved = db_session.query(User).filter(User.email == "new.person@example.com").first()
    assert saved is not None
    assert saved.hashed_password != "secret1"

def test_register_can_request_agent_role(client):
    response = client.post("/api/auth/register", json={
        "name": "Agent Smith",
        "email": "smith@example.com",
        "password": "secret1",
        "role": "agent",
    })
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["user"]["role"] == "agent"

def test_register_admin_is_refused(client):
    response = client.post("/api/auth/register", json={
        "name": "Sneaky",
        "email": "sneaky@example.com",
        "password": "secret1",
        "role": "admin",
    })
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_register_duplicate_email(client, user):
    response = client.post("/api/auth/register", json={
        "name": "Alice Again",
        "email": user.email.upper(),
        "password": "secret1",
    })
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "CONFLICT"

@pytest.mark.parametrize("payload", [
    {"name": "Short Pw", "email": "short@example.com", "password": "12345"},
    {"name": "Bad Email", "email": "not-an-email", "password": "secret1"},
    {"name": "   ", "email": "blank@example.com", "password": "secret1"},
    {"email": "noname@example.com", "password": "secret1"},
])
def test_register_rejects_invalid_input(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "VALIDATION_ERROR"

def test_login_success(client, user, default_password):
    """Test successful login with valid credentials."""
    response = client.post("/api/auth/login", json={"email": user.email, "password": default_password})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["id"] == user.id

    claims = auth_service.decode_access_token(data["token"])
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "user"

def test_login_invalid_credentials(client, user):
    """Unknown email and wrong password give the same answer."""
    wrong_password = client.post("/api/auth/login", json={"email": user.email, "password": "wrong-one"})
    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "wrong-one"})

    for response in (wrong_password, unknown):
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid email or password"
        assert response.headers["WWW-Authenticate"] == "Bearer"

def test_login_inactive_user(client, make_user, default_password):
    inactive = make_user("gone@example.com", is_active=False)
    response = client.post("/api/auth/login", json={"email": inactive.email, "password": default_password})
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_verify_returns_current_user(client, agent, auth_headers):
    response = client.get("/api/auth/verify", headers=auth_headers(agent))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["user"]["email"] == agent.email
    assert data["user"]["role"] == "agent"

def test_verify_without_token(client):
    response = client.get("/api/auth/verify")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "No token provided"

def test_verify_with_garbage_token(client):
    response = client.get("/api/auth/verify", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid token"

def test_verify_with_expired_token(client, user):
    token = auth_service.create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=-1))
    response = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Token expired"

def test_verify_with_token_for_deleted_user(client):
    token = auth_service.create_access_token({"sub": "999999"})
    response = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "User not found"

def test_token_reflects_current_role(client, db_session, user, auth_headers):
    """Role changes apply to tokens issued before the change."""
    headers = auth_headers(user)
    user.role = UserRole.AGENT
    db_session.commit()

    response = client.get("/api/auth/verify", headers=headers)
    assert response.json()["user"]["role"] == "agent"

def test_deactivated_user_token_is_rejected(client, db_session, user, auth_headers):
    headers = auth_headers(user)
    user.is_active = False
    db_session.commit()

    response = client.get("/api/tickets", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
