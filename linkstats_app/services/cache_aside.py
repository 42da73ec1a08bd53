import logging
from typing import Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from linkstats_app.cache.strategies import CacheStrategy

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheAside:
    """
    Compute-or-fetch helper shared by every analytics query shape.

    1. Read ``key``; a parseable payload is returned as ``schema``.
    2. Otherwise await ``compute()``, store its JSON for ``ttl`` seconds, return it.

    Exceptions from ``compute`` propagate and nothing is cached, so a
    NotFound is never remembered. Cache failures only cost a recomputation.
    """

    def __init__(self, cache: CacheStrategy):
        self.cache = cache

    async def _read(self, key: str, schema: Type[ModelT]) -> Optional[ModelT]:
        payload = await self.cache.get(key)
        if payload is None:
            return None
        try:
            return schema.model_validate_json(payload)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry %s", key)
            await self.cache.delete(key)
            return None

    async def fetch(
        self,
        key: str,
        ttl: int,
        schema: Type[ModelT],
        compute: Callable[[], Awaitable[ModelT]]
    ) -> ModelT:
        cached = await self._read(key, schema)
        if cached is not None:
            return cached

        result = await compute()
        if not await self.cache.set(key, result.model_dump_json(by_alias=True), ttl=ttl):
            logger.warning("Could not cache %s", key)
        return result
