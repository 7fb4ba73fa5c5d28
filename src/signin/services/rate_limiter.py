"""Rate limiting for public authentication endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.signin.config import settings

# Callback requests are unauthenticated, so limits are per client IP.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limits, applied per endpoint
    storage_uri="memory://",  # In-memory storage for single-instance deployment
    enabled=settings.rate_limit_enabled,
)


class RateLimitTiers:
    """Rate limit tiers for endpoint categories."""

    # Sign-in callbacks (each one may cost a token exchange and a key set fetch)
    AUTH = ["10 per minute", "100 per hour"]


# Note: The decorated endpoint must take a 'request: Request' parameter
auth_rate_limit = limiter.limit(";".join(RateLimitTiers.AUTH))
