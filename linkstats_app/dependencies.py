"""
FastAPI dependencies for dependency injection.

Cache, queue and visit storage are process-wide singletons built by their
factories from settings; services receive them explicitly instead of
reaching for globals, so tests can override any of them.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from linkstats_app.cache.factory import CacheFactory, CacheBackend
from linkstats_app.cache.strategies import CacheStrategy
from linkstats_app.config import settings
from linkstats_app.database.connection import get_db
from linkstats_app.queue.factory import QueueFactory, QueueBackend
from linkstats_app.queue.strategies import QueueStrategy
from linkstats_app.storage.factory import VisitStorageFactory, VisitStorageBackend
from linkstats_app.storage.strategies import VisitStorageStrategy


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache instance (singleton), backend chosen by settings"""
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_queue() -> QueueStrategy:
    """Queue instance (singleton), backend chosen by settings"""
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


@lru_cache()
def get_visit_storage() -> VisitStorageStrategy:
    """Visit storage instance (singleton), backend chosen by settings"""
    backend = VisitStorageBackend(settings.visit_storage_backend)
    return VisitStorageFactory.create(backend)


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
    queue: QueueStrategy = Depends(get_queue)
):
    """URLService with db, cache and queue injected"""
    from linkstats_app.services.url_service import URLService
    return URLService(db=db, cache=cache, queue=queue)


def get_analytics_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
    storage: VisitStorageStrategy = Depends(get_visit_storage)
):
    """AnalyticsService with db, visit storage and cache injected"""
    from linkstats_app.services.analytics_service import AnalyticsService
    return AnalyticsService(db=db, storage=storage, cache=cache)
