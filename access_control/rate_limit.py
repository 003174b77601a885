from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# App-level routes get the general ceiling via SlowAPIMiddleware
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.api_rate_limit],
    enabled=settings.rate_limit_enabled,
)

# One general ceiling shared by every /api/v1 management route
api_limit = limiter.shared_limit(settings.api_rate_limit, scope="api")

# Separate, higher ceiling for card readers
verify_limit = limiter.limit(settings.access_verify_rate_limit)
