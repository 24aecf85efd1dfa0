import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class MailSettings(BaseModel):
    smtp_host: Optional[str] = Field(default=os.getenv("SMTP_HOST") or None)
    smtp_port: int = Field(default=int(os.getenv("SMTP_PORT", "587")))
    smtp_username: Optional[str] = Field(default=os.getenv("SMTP_USERNAME") or None)
    smtp_password: Optional[str] = Field(default=os.getenv("SMTP_PASSWORD") or None)
    use_tls: bool = Field(default=os.getenv("SMTP_USE_TLS", "true").lower() == "true")
    timeout: float = Field(default=float(os.getenv("SMTP_TIMEOUT", "10")))
    from_address: str = Field(default=os.getenv("EMAIL_FROM", "Helpdesk <noreply@helpdesk.local>"))
    support_email: str = Field(default=os.getenv("SUPPORT_EMAIL", "support@helpdesk.local"))

class Config(BaseModel):
    app_name: str = "Helpdesk"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./helpdesk.db")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    # Auth
    secret_key: str = os.getenv("JWT_SECRET", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    min_password_length: int = 6
    allow_admin_signup: bool = os.getenv("ALLOW_ADMIN_SIGNUP", "false").lower() == "true"

    # First admin account, created at startup when no admin exists yet
    bootstrap_admin_email: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_EMAIL") or None
    bootstrap_admin_password: Optional[str] = os.getenv("BOOTSTRAP_ADMIN_PASSWORD") or None
    bootstrap_admin_name: str = os.getenv("BOOTSTRAP_ADMIN_NAME", "Administrator")

    # Notifications
    mail: MailSettings = MailSettings()

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    # Rate limiting
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
    auth_rate_limit: str = os.getenv("AUTH_RATE_LIMIT", "10/minute")

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key or "change-it" in settings.secret_key:
        raise RuntimeError(
            "FATAL: JWT_SECRET must be set for non-development environments. "
            "Set it as an environment variable."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default JWT_SECRET; only acceptable in development.")
