"""Rate limiting shared by all API modules."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from tasknest.config import get_settings

limiter = Limiter(key_func=get_remote_address)

UNLIMITED = "1000000/minute"  # Effectively unlimited when disabled


def default_rate_limit() -> str:
    """Get the default rate limit from settings."""
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return UNLIMITED
    return settings.rate_limit_default


def auth_rate_limit() -> str:
    """Get the stricter limit for login and registration."""
    settings = get_settings()
    if not settings.rate_limit_enabled:
        return UNLIMITED
    return settings.rate_limit_auth
