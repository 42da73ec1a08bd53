import logging

from linkstats_app.cache import keys
from linkstats_app.cache.strategies import CacheStrategy

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """
    Evicts the aggregate entries a new visit makes stale.

    Topic entries are not indexed by alias, so every ``topic:*:{owner}``
    entry is dropped. TTLs bound staleness if an eviction is lost or races
    with a recomputation.
    """

    def __init__(self, cache: CacheStrategy):
        self.cache = cache

    async def invalidate(self, owner_id: str, alias: str) -> None:
        try:
            await self.cache.delete(keys.analytics_key(alias, owner_id))
            await self.cache.delete(keys.overall_key(owner_id))
            await self.cache.delete_pattern(keys.topic_pattern(owner_id))
        except Exception:
            logger.exception("Cache invalidation failed for owner=%s alias=%s", owner_id, alias)
