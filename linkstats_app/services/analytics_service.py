"""
Analytics aggregation over the visit store.

Three query shapes share one cache-aside path, each with its own key
and TTL:

    per-alias   analytics:{alias}:{owner}   1 hour
    per-topic   topic:{topic}:{owner}       30 minutes
    overall     overall:{owner}             30 minutes

Totals come from the mappings' click counters; distinct visitors,
histograms and breakdowns come from the visit store.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from linkstats_app.cache import keys
from linkstats_app.cache.strategies import CacheStrategy, NullCache
from linkstats_app.config import settings
from linkstats_app.exceptions import DependencyFailureError, NotFoundError
from linkstats_app.models.url import Topic, UrlMapping
from linkstats_app.schemas.analytics import (
    DateCount,
    DeviceStat,
    OsStat,
    OverallAnalytics,
    TopicAnalytics,
    TopicUrlStat,
    UrlAnalytics,
)
from linkstats_app.services.cache_aside import CacheAside
from linkstats_app.storage.strategies import VisitStorageStrategy

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsService:
    """
    Owner-scoped analytics with cached results.

    Another owner's alias is reported as NotFound, never as forbidden,
    so the existence of other people's links does not leak.
    """

    def __init__(
        self,
        db: Session,
        storage: VisitStorageStrategy,
        cache: Optional[CacheStrategy] = None,
        window_days: int = settings.analytics_window_days,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.storage = storage
        self.cache_aside = CacheAside(cache or NullCache())
        self.window_days = window_days
        self.clock = clock

    # Public query shapes

    async def get_url_analytics(self, alias: str, owner_id: str) -> UrlAnalytics:
        """Raises NotFoundError when the alias is missing or not owned by ``owner_id``"""
        return await self.cache_aside.fetch(
            keys.analytics_key(alias, owner_id),
            settings.analytics_cache_ttl,
            UrlAnalytics,
            lambda: self._compute_url_analytics(alias, owner_id)
        )

    async def get_topic_analytics(self, topic: str, owner_id: str) -> TopicAnalytics:
        """Raises NotFoundError for an unknown topic or one with no owned mappings"""
        return await self.cache_aside.fetch(
            keys.topic_key(topic, owner_id),
            settings.topic_cache_ttl,
            TopicAnalytics,
            lambda: self._compute_topic_analytics(topic, owner_id)
        )

    async def get_overall_analytics(self, owner_id: str) -> OverallAnalytics:
        """Zero-valued (and still cached) when the owner has no mappings"""
        return await self.cache_aside.fetch(
            keys.overall_key(owner_id),
            settings.overall_cache_ttl,
            OverallAnalytics,
            lambda: self._compute_overall_analytics(owner_id)
        )

    # Computation

    def _find_mappings(self, *criteria) -> List[UrlMapping]:
        try:
            return self.db.query(UrlMapping).filter(*criteria).order_by(UrlMapping.id).all()
        except SQLAlchemyError as e:
            raise DependencyFailureError("Mapping store unavailable") from e

    def _window_start(self) -> datetime:
        return self.clock() - timedelta(days=self.window_days)

    async def _clicks_by_date(self, mapping_ids: Sequence[int]) -> List[DateCount]:
        rows = await self.storage.get_clicks_by_date(mapping_ids, self._window_start())
        return [DateCount(date=row["date"], count=row["count"]) for row in rows]

    async def _os_breakdown(self, mapping_ids: Sequence[int]) -> List[OsStat]:
        rows = await self.storage.get_breakdown(mapping_ids, "os_type")
        return [
            OsStat(os_name=row["name"], unique_clicks=row["clicks"], unique_users=row["unique_visitors"])
            for row in rows
        ]

    async def _device_breakdown(self, mapping_ids: Sequence[int]) -> List[DeviceStat]:
        rows = await self.storage.get_breakdown(mapping_ids, "device_type")
        return [
            DeviceStat(device_name=row["name"], unique_clicks=row["clicks"], unique_users=row["unique_visitors"])
            for row in rows
        ]

    async def _compute_url_analytics(self, alias: str, owner_id: str) -> UrlAnalytics:
        mappings = self._find_mappings(UrlMapping.alias == alias, UrlMapping.owner_id == owner_id)
        if not mappings:
            raise NotFoundError(f"URL '{alias}' not found")

        mapping = mappings[0]
        ids = [mapping.id]
        return UrlAnalytics(
            total_clicks=mapping.clicks or 0,
            unique_users=await self.storage.count_unique_visitors(ids),
            clicks_by_date=await self._clicks_by_date(ids),
            os_type=await self._os_breakdown(ids),
            device_type=await self._device_breakdown(ids)
        )

    async def _compute_topic_analytics(self, topic: str, owner_id: str) -> TopicAnalytics:
        if topic not in {member.value for member in Topic}:
            raise NotFoundError(f"Unknown topic '{topic}'")

        mappings = self._find_mappings(UrlMapping.topic == Topic(topic), UrlMapping.owner_id == owner_id)
        if not mappings:
            raise NotFoundError(f"No URLs found for topic '{topic}'")

        ids = [mapping.id for mapping in mappings]
        visitors_by_mapping = await self.storage.get_unique_visitors_by_mapping(ids)

        return TopicAnalytics(
            total_clicks=sum(mapping.clicks or 0 for mapping in mappings),
            unique_users=await self.storage.count_unique_visitors(ids),
            clicks_by_date=await self._clicks_by_date(ids),
            urls=[
                TopicUrlStat(
                    short_url=f"{settings.base_url}/{mapping.alias}",
                    total_clicks=mapping.clicks or 0,
                    unique_users=visitors_by_mapping.get(mapping.id, 0)
                )
                for mapping in mappings
            ]
        )

    async def _compute_overall_analytics(self, owner_id: str) -> OverallAnalytics:
        mappings = self._find_mappings(UrlMapping.owner_id == owner_id)
        if not mappings:
            return OverallAnalytics()

        ids = [mapping.id for mapping in mappings]
        return OverallAnalytics(
            total_urls=len(mappings),
            total_clicks=sum(mapping.clicks or 0 for mapping in mappings),
            unique_users=await self.storage.count_unique_visitors(ids),
            clicks_by_date=await self._clicks_by_date(ids),
            os_type=await self._os_breakdown(ids),
            device_type=await self._device_breakdown(ids)
        )
