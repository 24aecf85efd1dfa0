"""
Password hashing, access tokens and the signup/login flows.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AccessDeniedError, AuthenticationError, ConflictError
from helpdesk.models.user import User, UserRole
from helpdesk.schemas.auth import SignupRequest

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid email or password"

# Unknown emails are verified against this so every failed login costs one bcrypt check
_DUMMY_HASH = pwd_context.hash("helpdesk-timing-equaliser")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_token_for(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role.value})


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Returns the token claims, ``{"error": "TOKEN_EXPIRED"}`` for an expired
    token, or None when the token cannot be trusted.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        return {"error": "TOKEN_EXPIRED"}
    except JWTError:
        return None


def register_user(db: Session, data: SignupRequest) -> User:
    if data.role == UserRole.ADMIN and not settings.allow_admin_signup:
        raise AccessDeniedError("Administrator accounts cannot be self-registered")

    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("User with this email already exists")

    user = User(
        name=data.name.strip(),
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id, "role": user.role.value})
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    hashed = user.hashed_password if user is not None else _DUMMY_HASH
    if not verify_password(password, hashed) or user is None:
        logger.warning("Failed login attempt", extra={"reason": "invalid_credentials"})
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.is_active:
        raise AccessDeniedError("User is inactive")
    return user
