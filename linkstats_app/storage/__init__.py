"""
Visit storage module (the event store).

Separates transactional data (mapping store) from analytical data
(individual visit events), behind a pluggable strategy.
"""

from .models import GeoLocation, VisitEvent
from .strategies import VisitStorageStrategy, SQLiteVisitStorage
from .factory import VisitStorageFactory, VisitStorageBackend

__all__ = [
    "GeoLocation",
    "VisitEvent",
    "VisitStorageStrategy",
    "SQLiteVisitStorage",
    "VisitStorageFactory",
    "VisitStorageBackend",
]
