"""
Rate limiting for URL creation.

Fixed window per client address (slowapi, in-memory storage). Only the
shorten endpoint is limited; redirects and analytics are not.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from linkstats_app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled
)

SHORTEN_LIMIT = settings.shorten_rate_limit
