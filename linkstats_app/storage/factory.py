"""
Factory for creating visit storage instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

from .strategies import VisitStorageStrategy, SQLiteVisitStorage
from linkstats_app.config import settings

logger = logging.getLogger(__name__)


class VisitStorageBackend(Enum):
    """Available visit storage backends"""
    SQLITE = "sqlite"


class VisitStorageFactory:
    """
    Simple factory for creating visit storage instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: VisitStorageStrategy = None

    @classmethod
    def create(cls, backend: VisitStorageBackend) -> VisitStorageStrategy:
        """
        Create or return cached visit storage instance.

        Args:
            backend: Type of storage backend (from enum)

        Returns:
            Singleton visit storage instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == VisitStorageBackend.SQLITE:
            cls._instance = SQLiteVisitStorage(db_path=settings.visit_storage_sqlite_path)
        else:
            raise ValueError(f"Unknown storage backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
