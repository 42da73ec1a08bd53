import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from linkstats_app.cache import keys
from linkstats_app.cache.strategies import CacheStrategy, NullCache
from linkstats_app.config import settings
from linkstats_app.exceptions import AliasConflictError, DependencyFailureError
from linkstats_app.models.url import UrlMapping
from linkstats_app.queue.models import VisitMessage
from linkstats_app.queue.strategies import QueueStrategy
from linkstats_app.schemas.url import ShortenRequest
from linkstats_app.services.alias_generator import AliasGenerator
from linkstats_app.utils.user_agent import parse_user_agent

logger = logging.getLogger(__name__)


class URLService:
    """
    Shorten and redirect operations, with cache and queue injected.

    The redirect path never writes to the mapping store: it reads through
    the cache and hands the visit to the queue for the worker to record.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        queue: Optional[QueueStrategy] = None,
        alias_generator: Optional[AliasGenerator] = None
    ):
        """
        Initialize URL service with dependencies.

        Args:
            db: Database session (mapping store)
            cache: Cache strategy; a NullCache is used when omitted
            queue: Queue strategy for visit hand-off; visits are dropped when omitted
            alias_generator: Alias source; defaults to random nanoid aliases
        """
        self.db = db
        self.cache = cache or NullCache()
        self.queue = queue
        self.alias_generator = alias_generator or AliasGenerator()

    async def create_short_url(self, request: ShortenRequest, owner_id: str) -> UrlMapping:
        """
        Create a mapping owned by ``owner_id`` and warm the redirect cache.

        Raises:
            InvalidInputError: malformed or reserved custom alias
            AliasConflictError: custom alias already taken
            DependencyFailureError: mapping store unavailable
        """
        while True:
            alias = self.alias_generator.generate(self.db, request.custom_alias)
            mapping = UrlMapping(
                alias=alias,
                long_url=str(request.long_url),
                topic=request.topic,
                owner_id=owner_id,
                clicks=0
            )
            self.db.add(mapping)
            try:
                self.db.commit()
                break
            except IntegrityError:
                # Lost a race for the same alias between the check and the insert
                self.db.rollback()
                if request.custom_alias is not None:
                    raise AliasConflictError(alias)
                logger.warning("Alias %s was taken concurrently, generating another", alias)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DependencyFailureError("Mapping store unavailable") from e

        self.db.refresh(mapping)

        # Write-through; the cache is advisory so a failed set is only logged
        if not await self.cache.set(keys.url_key(alias), mapping.long_url, ttl=settings.url_cache_ttl):
            logger.warning("Could not cache new mapping %s", alias)

        return mapping

    async def resolve(self, alias: str) -> Optional[str]:
        """
        Get the destination for redirection using Cache-Aside pattern.

        Flow:
        1. Check cache ``url:{alias}``; a hit returns without touching the DB
        2. On miss, query the mapping store (None when unknown)
        3. Populate the cache for next time (idempotent, safe to race)

        Raises:
            DependencyFailureError: mapping store unavailable
        """
        cache_key = keys.url_key(alias)

        cached_url = await self.cache.get(cache_key)
        if cached_url:
            return cached_url

        try:
            row = self.db.query(UrlMapping.long_url).filter(UrlMapping.alias == alias).first()
        except SQLAlchemyError as e:
            raise DependencyFailureError("Mapping store unavailable") from e

        if row is None:
            return None

        await self.cache.set(cache_key, row.long_url, ttl=settings.url_cache_ttl)
        return row.long_url

    async def dispatch_visit(
        self,
        alias: str,
        ip_address: Optional[str],
        user_agent: Optional[str]
    ) -> bool:
        """
        Hand a visit to the queue without waiting for it to be recorded.

        Never raises: a visit that cannot be queued is logged and dropped.
        """
        if self.queue is None:
            return False

        try:
            os_type, device_type = parse_user_agent(user_agent)
            message = VisitMessage(
                alias=alias,
                timestamp=datetime.now(timezone.utc),
                ip_address=ip_address or "unknown",
                user_agent=user_agent,
                os_type=os_type,
                device_type=device_type
            )
            published = await self.queue.publish(settings.queue_name, message)
        except Exception:
            logger.exception("Failed to dispatch visit for %s", alias)
            return False

        if not published:
            logger.warning("Visit for %s was not queued", alias)
        return published
