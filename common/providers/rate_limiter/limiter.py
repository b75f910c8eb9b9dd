"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from common.core.config import settings

# Redis-backed so limits hold across all API pods
# Both limits apply; whichever is hit first wins
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["5/second", "120/minute"],
    storage_uri=settings.redis_connection_url,
)
