"""
Visit recording, run by the visit worker off the redirect path.

Per visit:
1. Re-resolve the alias in the mapping store (drop if it is gone)
2. Geolocate the origin IP (best-effort)
3. Append the VisitEvent to the event store
4. Atomically increment the mapping's click counter
5. Invalidate the aggregates that depend on this alias and owner

Every failure is logged and swallowed; nothing here reaches a visitor.
"""

import asyncio
import logging
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from linkstats_app.cache.strategies import CacheStrategy
from linkstats_app.database.connection import SessionLocal
from linkstats_app.models.url import UrlMapping
from linkstats_app.queue.models import VisitMessage
from linkstats_app.services.cache_invalidator import CacheInvalidator
from linkstats_app.storage.models import GeoLocation, VisitEvent
from linkstats_app.storage.strategies import VisitStorageStrategy
from linkstats_app.utils.geo import lookup_geolocation

logger = logging.getLogger(__name__)


class VisitRecorder:

    def __init__(
        self,
        storage: VisitStorageStrategy,
        cache: CacheStrategy,
        db_session_factory=SessionLocal,
        geo_lookup: Callable[[str], GeoLocation] = lookup_geolocation
    ):
        self.storage = storage
        self.invalidator = CacheInvalidator(cache)
        self.db_session_factory = db_session_factory
        self.geo_lookup = geo_lookup

    async def record(self, message: VisitMessage) -> bool:
        """
        Record one visit.

        Returns:
            True when the event was stored and counted, False when it was dropped
        """
        try:
            return await self._record(message)
        except Exception:
            logger.exception("❌ Failed to record visit for %s", message.alias)
            return False

    async def _geolocate(self, ip_address: str) -> GeoLocation:
        try:
            # Lookup does blocking network I/O
            return await asyncio.to_thread(self.geo_lookup, ip_address)
        except Exception as e:
            logger.debug("Geo lookup error for %s: %s", ip_address, e)
            return GeoLocation()

    async def _record(self, message: VisitMessage) -> bool:
        db = self.db_session_factory()
        try:
            mapping = db.query(UrlMapping.id, UrlMapping.owner_id).filter(
                UrlMapping.alias == message.alias
            ).first()

            if mapping is None:
                # The cache served an alias the store no longer has
                logger.info("Dropping visit for unknown alias %s", message.alias)
                return False

            event = VisitEvent(
                mapping_id=mapping.id,
                alias=message.alias,
                timestamp=message.timestamp,
                ip_address=message.ip_address,
                user_agent=message.user_agent,
                geolocation=await self._geolocate(message.ip_address),
                os_type=message.os_type,
                device_type=message.device_type
            )

            # Counter only moves once the event exists, keeping clicks == events
            if not await self.storage.store_visit(event):
                logger.error("❌ Visit for %s not stored; counter left unchanged", message.alias)
                return False

            try:
                db.execute(
                    update(UrlMapping)
                    .where(UrlMapping.id == mapping.id)
                    .values(clicks=UrlMapping.clicks + 1)
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                # The event is already in the visit store: clicks now lags events for this mapping
                logger.exception(
                    "❌ Visit for %s stored but click counter not incremented (mapping %s)",
                    message.alias, mapping.id
                )
                return False
            owner_id = mapping.owner_id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        await self.invalidator.invalidate(owner_id, message.alias)
        return True
