"""
Visit storage strategies using Strategy Pattern.

The event store is append-only: events are written once by the visit
recorder and afterwards only read by the analytics aggregator, always
scoped to a set of mapping ids (one alias, one topic, or one owner).
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from linkstats_app.exceptions import DependencyFailureError
from .models import VisitEvent

logger = logging.getLogger(__name__)

# Naive UTC, fixed width, so string comparison orders like time
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

BREAKDOWN_DIMENSIONS = ("os_type", "device_type")


def to_storage_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


class VisitStorageStrategy(ABC):
    """
    Abstract base class for visit storage strategies.

    Every query takes the list of mapping ids in scope; an empty list is a
    valid scope and yields zero / empty results.
    """

    @abstractmethod
    async def store_visit(self, event: VisitEvent) -> bool:
        """
        Append a single visit event.

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def store_visits(self, events: List[VisitEvent]) -> bool:
        """Append multiple visit events in one write"""
        pass

    @abstractmethod
    async def count_visits(self, mapping_ids: Sequence[int]) -> int:
        """Total number of events in scope"""
        pass

    @abstractmethod
    async def count_unique_visitors(self, mapping_ids: Sequence[int]) -> int:
        """Distinct origin IPs over all events in scope"""
        pass

    @abstractmethod
    async def get_unique_visitors_by_mapping(self, mapping_ids: Sequence[int]) -> Dict[int, int]:
        """Distinct origin IPs per mapping; mappings without events are absent"""
        pass

    @abstractmethod
    async def get_clicks_by_date(self, mapping_ids: Sequence[int], since: datetime) -> List[Dict]:
        """
        Daily click histogram.

        Returns:
            ``[{"date": "YYYY-MM-DD", "count": n}, ...]`` in ascending date
            order, covering events at or after ``since``
        """
        pass

    @abstractmethod
    async def get_breakdown(self, mapping_ids: Sequence[int], dimension: str) -> List[Dict]:
        """
        Clicks and distinct visitors per category of ``dimension``.

        Returns:
            ``[{"name": ..., "clicks": n, "unique_visitors": m}, ...]``
            sorted by clicks (descending), then name
        """
        pass


class SQLiteVisitStorage(VisitStorageStrategy):
    """
    SQLite implementation for visit storage.

    Zero configuration and fine for development or low traffic. Opens a
    connection per call so it can be shared by the API and the worker.
    """

    def __init__(self, db_path: str = "analytics.db"):
        self.db_path = db_path
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=30)

    def _init_database(self):
        """Create visit table and indexes if they don't exist"""
        conn = self._connect()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS visit_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mapping_id INTEGER NOT NULL,
                    alias TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    ip_address TEXT NOT NULL,
                    user_agent TEXT,
                    country TEXT,
                    city TEXT,
                    latitude REAL,
                    longitude REAL,
                    os_type TEXT,
                    device_type TEXT
                );
                CREATE INDEX IF NOT EXISTS idx_visit_events_mapping_ts
                    ON visit_events (mapping_id, timestamp);
                CREATE INDEX IF NOT EXISTS idx_visit_events_ts
                    ON visit_events (timestamp);
            """)
            conn.commit()
        finally:
            conn.close()
        logger.info("✅ SQLite visit storage initialized at %s", self.db_path)

    @staticmethod
    def _placeholders(mapping_ids: Sequence[int]) -> str:
        return ", ".join("?" for _ in mapping_ids)

    def _query(self, sql: str, params: Sequence) -> List[tuple]:
        try:
            conn = self._connect()
            try:
                return conn.execute(sql, tuple(params)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DependencyFailureError("Visit store unavailable") from e

    async def store_visit(self, event: VisitEvent) -> bool:
        return await self.store_visits([event])

    async def store_visits(self, events: List[VisitEvent]) -> bool:
        rows = [
            (
                event.mapping_id,
                event.alias,
                to_storage_timestamp(event.timestamp),
                event.ip_address,
                event.user_agent,
                event.geolocation.country,
                event.geolocation.city,
                event.geolocation.latitude,
                event.geolocation.longitude,
                event.os_type,
                event.device_type,
            )
            for event in events
        ]
        try:
            conn = self._connect()
            try:
                conn.executemany("""
                    INSERT INTO visit_events (
                        mapping_id, alias, timestamp, ip_address, user_agent,
                        country, city, latitude, longitude, os_type, device_type
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, rows)
                conn.commit()
            finally:
                conn.close()
            return True
        except sqlite3.Error as e:
            logger.error("❌ SQLite storage error: %s", e)
            return False

    async def count_visits(self, mapping_ids: Sequence[int]) -> int:
        if not mapping_ids:
            return 0
        rows = self._query(
            f"SELECT COUNT(*) FROM visit_events WHERE mapping_id IN ({self._placeholders(mapping_ids)})",
            mapping_ids
        )
        return rows[0][0]

    async def count_unique_visitors(self, mapping_ids: Sequence[int]) -> int:
        if not mapping_ids:
            return 0
        rows = self._query(
            f"SELECT COUNT(DISTINCT ip_address) FROM visit_events "
            f"WHERE mapping_id IN ({self._placeholders(mapping_ids)})",
            mapping_ids
        )
        return rows[0][0]

    async def get_unique_visitors_by_mapping(self, mapping_ids: Sequence[int]) -> Dict[int, int]:
        if not mapping_ids:
            return {}
        rows = self._query(
            f"""
            SELECT mapping_id, COUNT(DISTINCT ip_address)
            FROM visit_events
            WHERE mapping_id IN ({self._placeholders(mapping_ids)})
            GROUP BY mapping_id
            """,
            mapping_ids
        )
        return {mapping_id: count for mapping_id, count in rows}

    async def get_clicks_by_date(self, mapping_ids: Sequence[int], since: datetime) -> List[Dict]:
        if not mapping_ids:
            return []
        rows = self._query(
            f"""
            SELECT DATE(timestamp) AS date, COUNT(*) AS count
            FROM visit_events
            WHERE mapping_id IN ({self._placeholders(mapping_ids)}) AND timestamp >= ?
            GROUP BY DATE(timestamp)
            ORDER BY date
            """,
            [*mapping_ids, to_storage_timestamp(since)]
        )
        return [{"date": row[0], "count": row[1]} for row in rows]

    async def get_breakdown(self, mapping_ids: Sequence[int], dimension: str) -> List[Dict]:
        if dimension not in BREAKDOWN_DIMENSIONS:
            raise ValueError(f"Unknown breakdown dimension: {dimension}")
        if not mapping_ids:
            return []
        rows = self._query(
            f"""
            SELECT COALESCE({dimension}, 'Unknown') AS name,
                   COUNT(*) AS clicks,
                   COUNT(DISTINCT ip_address) AS unique_visitors
            FROM visit_events
            WHERE mapping_id IN ({self._placeholders(mapping_ids)})
            GROUP BY name
            ORDER BY clicks DESC, name
            """,
            mapping_ids
        )
        return [
            {"name": row[0], "clicks": row[1], "unique_visitors": row[2]}
            for row in rows
        ]
