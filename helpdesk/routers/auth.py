from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
import logging
from helpdesk.core.config import settings
from helpdesk.core.limiter import limiter
from helpdesk.database import get_db
from helpdesk.models.user import User
from helpdesk.services import auth as auth_service
from helpdesk.schemas.auth import LoginRequest, SignupRequest, TokenResponse, UserResponse, VerifyResponse
from helpdesk.routers.auth_deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        token=auth_service.create_token_for(user),
        user=UserResponse.model_validate(user),
    )

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.auth_rate_limit)
def register(request: Request, signup_data: SignupRequest, db: Session = Depends(get_db)):
    """Create an account and return a token for it."""
    user = auth_service.register_user(db, signup_data)
    return _token_response(user)

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
def login(request: Request, login_data: LoginRequest, db: Session = Depends(get_db)):
    # JSON body instead of OAuth2 form-data for frontend compatibility
    user = auth_service.authenticate(db, login_data.email, login_data.password)
    logger.info("User logged in", extra={"user_id": user.id})
    return _token_response(user)

@router.get("/verify", response_model=VerifyResponse)
def verify(current_user: User = Depends(get_current_user)):
    """Resolve the bearer token to a fresh copy of its user."""
    return VerifyResponse(user=UserResponse.model_validate(current_user))
