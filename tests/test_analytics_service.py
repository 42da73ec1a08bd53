"""
Tests for analytics aggregation.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from linkstats_app.cache import keys
from linkstats_app.config import settings
from linkstats_app.exceptions import NotFoundError
from linkstats_app.models.url import Topic, UrlMapping
from linkstats_app.services.analytics_service import AnalyticsService
from linkstats_app.storage.models import VisitEvent

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class AnalyticsFixture:
    """Mappings plus matching visit events, with counters kept equal to event counts"""

    def __init__(self, db_session, storage):
        self.db = db_session
        self.storage = storage

    def mapping(self, alias, owner_id="user-1", topic=Topic.ACQUISITION):
        mapping = UrlMapping(alias=alias, long_url=f"https://example.com/{alias}", topic=topic, owner_id=owner_id)
        self.db.add(mapping)
        self.db.commit()
        return mapping

    def visit(self, mapping, ip, days_ago=0, os_type="Windows", device_type="desktop"):
        asyncio.run(self.storage.store_visit(VisitEvent(
            mapping_id=mapping.id,
            alias=mapping.alias,
            timestamp=NOW - timedelta(days=days_ago),
            ip_address=ip,
            os_type=os_type,
            device_type=device_type
        )))
        mapping.clicks += 1
        self.db.commit()


@pytest.fixture
def data(db_session, visit_storage):
    return AnalyticsFixture(db_session, visit_storage)


@pytest.fixture
def service(db_session, visit_storage, cache):
    return AnalyticsService(db_session, visit_storage, cache=cache, clock=lambda: NOW)


class TestUrlAnalytics:

    def test_totals_and_breakdowns(self, data, service):
        mapping = data.mapping("abc")
        data.visit(mapping, "1.1.1.1", os_type="iOS", device_type="mobile")
        data.visit(mapping, "1.1.1.1", os_type="iOS", device_type="mobile")
        data.visit(mapping, "2.2.2.2", days_ago=1)

        result = asyncio.run(service.get_url_analytics("abc", "user-1"))

        assert result.total_clicks == 3
        assert result.unique_users == 2
        assert [(d.date, d.count) for d in result.clicks_by_date] == [("2025-03-09", 1), ("2025-03-10", 2)]
        assert [(o.os_name, o.unique_clicks, o.unique_users) for o in result.os_type] == [
            ("iOS", 2, 1), ("Windows", 1, 1)
        ]
        assert [(d.device_name, d.unique_clicks) for d in result.device_type] == [("mobile", 2), ("desktop", 1)]

    def test_histogram_is_limited_to_window(self, data, service):
        mapping = data.mapping("abc")
        data.visit(mapping, "1.1.1.1", days_ago=2)
        data.visit(mapping, "1.1.1.1", days_ago=settings.analytics_window_days + 1)

        result = asyncio.run(service.get_url_analytics("abc", "user-1"))

        assert result.total_clicks == 2
        assert [d.date for d in result.clicks_by_date] == ["2025-03-08"]

    def test_no_visits(self, data, service):
        data.mapping("abc")

        result = asyncio.run(service.get_url_analytics("abc", "user-1"))

        assert result.total_clicks == 0
        assert result.unique_users == 0
        assert result.clicks_by_date == []
        assert result.os_type == []

    def test_other_owner_is_not_found(self, data, service, cache):
        data.mapping("abc", owner_id="user-2")

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_url_analytics("abc", "user-1"))

        assert asyncio.run(cache.get(keys.analytics_key("abc", "user-1"))) is None

    def test_unknown_alias_is_not_found(self, db_session, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.get_url_analytics("missing", "user-1"))

    def test_result_is_cached_until_invalidated(self, data, service, cache):
        """Test that a cached result is served until its key is evicted"""
        mapping = data.mapping("abc")
        data.visit(mapping, "1.1.1.1")
        assert asyncio.run(service.get_url_analytics("abc", "user-1")).total_clicks == 1

        data.visit(mapping, "2.2.2.2")
        assert asyncio.run(service.get_url_analytics("abc", "user-1")).total_clicks == 1

        asyncio.run(cache.delete(keys.analytics_key("abc", "user-1")))
        assert asyncio.run(service.get_url_analytics("abc", "user-1")).total_clicks == 2


class TestTopicAnalytics:

    def test_aggregates_owner_mappings_in_topic(self, data, service):
        first = data.mapping("one", topic=Topic.ACTIVATION)
        second = data.mapping("two", topic=Topic.ACTIVATION)
        other_topic = data.mapping("three", topic=Topic.RETENTION)
        other_owner = data.mapping("four", owner_id="user-2", topic=Topic.ACTIVATION)
        data.visit(first, "1.1.1.1")
        data.visit(first, "2.2.2.2")
        data.visit(second, "1.1.1.1")
        data.visit(other_topic, "3.3.3.3")
        data.visit(other_owner, "4.4.4.4")

        result = asyncio.run(service.get_topic_analytics("activation", "user-1"))

        assert result.total_clicks == 3
        assert result.unique_users == 2
        assert [(u.short_url, u.total_clicks, u.unique_users) for u in result.urls] == [
            (f"{settings.base_url}/one", 2, 2),
            (f"{settings.base_url}/two", 1, 1),
        ]

    def test_mapping_without_visits_is_listed(self, data, service):
        data.mapping("quiet", topic=Topic.RETENTION)

        result = asyncio.run(service.get_topic_analytics("retention", "user-1"))

        assert result.total_clicks == 0
        assert [(u.total_clicks, u.unique_users) for u in result.urls] == [(0, 0)]

    def test_unknown_topic(self, db_session, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.get_topic_analytics("marketing", "user-1"))

    def test_topic_without_mappings(self, data, service):
        data.mapping("abc", topic=Topic.ACQUISITION)

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_topic_analytics("retention", "user-1"))


class TestOverallAnalytics:

    def test_aggregates_every_owned_mapping(self, data, service):
        first = data.mapping("one", topic=Topic.ACTIVATION)
        second = data.mapping("two", topic=Topic.RETENTION)
        data.mapping("three")
        data.visit(first, "1.1.1.1", os_type="Android", device_type="mobile")
        data.visit(second, "1.1.1.1")
        data.visit(second, "2.2.2.2", days_ago=3)

        result = asyncio.run(service.get_overall_analytics("user-1"))

        assert result.total_urls == 3
        assert result.total_clicks == 3
        assert result.unique_users == 2
        assert sum(d.count for d in result.clicks_by_date) == 3
        assert {o.os_name for o in result.os_type} == {"Android", "Windows"}

    def test_owner_without_mappings_gets_zeros(self, db_session, service, cache):
        result = asyncio.run(service.get_overall_analytics("nobody"))

        assert result.total_urls == 0
        assert result.total_clicks == 0
        assert result.unique_users == 0
        assert result.clicks_by_date == []
        assert asyncio.run(cache.get(keys.overall_key("nobody"))) is not None
