from slowapi import Limiter
from slowapi.util import get_remote_address

from helpdesk.core.config import settings

# Default limit applies to every route through SlowAPIMiddleware;
# auth endpoints carry a stricter per-route limit.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.environment != "testing",
)
