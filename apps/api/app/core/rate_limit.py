"""Rate limiting configuration for the CompassIQ API."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

DEFAULT_LIMITS = (
    [] if settings.RATE_LIMIT_API <= 0 else [f"{settings.RATE_LIMIT_API}/minute"]
)

# memory:// for a single process; point RATE_LIMIT_STORAGE_URI at a shared
# backend when running several workers
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
)
