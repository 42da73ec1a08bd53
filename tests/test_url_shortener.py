from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from linkstats_app.auth import create_access_token
from linkstats_app.config import settings

CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def shorten(client, headers, **payload):
    payload.setdefault("longUrl", "https://example.com")
    return client.post("/shorten", json=payload, headers=headers)


class TestShorten:
    """Test the shorten endpoint"""

    def test_create_short_url(self, client: TestClient, auth_headers):
        """Test creating a short URL"""
        response = shorten(client, auth_headers, longUrl="https://www.google.com/")
        assert response.status_code == 201

        data = response.json()
        assert len(data["alias"]) == settings.alias_length
        assert data["shortUrl"] == f"{settings.base_url}/{data['alias']}"
        assert "createdAt" in data

    def test_custom_alias(self, client: TestClient, auth_headers):
        response = shorten(client, auth_headers, customAlias="spring-sale", topic="activation")

        assert response.status_code == 201
        assert response.json()["alias"] == "spring-sale"

    def test_custom_alias_conflict(self, client: TestClient, auth_headers, other_auth_headers):
        """Test that a taken alias is rejected and keeps its destination"""
        shorten(client, auth_headers, longUrl="https://first.example.com/", customAlias="promo")

        response = shorten(client, other_auth_headers, longUrl="https://second.example.com/", customAlias="promo")
        assert response.status_code == 400
        assert "promo" in response.json()["detail"]

        redirect = client.get("/promo", follow_redirects=False)
        assert redirect.headers["location"] == "https://first.example.com/"

    @pytest.mark.parametrize("alias", ["analytics", "overall"])
    def test_reserved_alias(self, client: TestClient, auth_headers, alias):
        response = shorten(client, auth_headers, customAlias=alias)
        assert response.status_code == 400

    def test_overall_alias_cannot_shadow_overall_analytics(self, client: TestClient, auth_headers):
        shorten(client, auth_headers, customAlias="overall")

        assert client.get("/overall", follow_redirects=False).status_code == 404
        assert client.get("/analytics/overall", headers=auth_headers).json()["totalUrls"] == 0

    def test_invalid_url(self, client: TestClient, auth_headers):
        """Test creating URL with invalid format"""
        response = shorten(client, auth_headers, longUrl="not-a-valid-url")
        assert response.status_code == 422

    def test_invalid_topic(self, client: TestClient, auth_headers):
        response = shorten(client, auth_headers, topic="marketing")
        assert response.status_code == 422

    def test_requires_authentication(self, client: TestClient):
        response = shorten(client, {})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_rejects_bad_token(self, client: TestClient):
        response = shorten(client, {"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_rejects_expired_token(self, client: TestClient):
        token = create_access_token("user-1", expires_delta=timedelta(minutes=-1))
        response = shorten(client, {"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_rate_limit(self, client: TestClient, auth_headers):
        """Test that the eleventh creation inside the window is throttled"""
        for i in range(10):
            assert shorten(client, auth_headers, longUrl=f"https://example.com/{i}").status_code == 201

        response = shorten(client, auth_headers, longUrl="https://example.com/11")
        assert response.status_code == 429


class TestRedirect:
    """Test alias resolution over HTTP"""

    def test_redirect_url(self, client: TestClient, auth_headers):
        """Test URL redirection"""
        alias = shorten(client, auth_headers, longUrl="https://www.github.com/").json()["alias"]

        response = client.get(f"/{alias}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_nonexistent_url(self, client: TestClient):
        """Test redirecting non-existent URL"""
        response = client.get("/nonexistent", follow_redirects=False)
        assert response.status_code == 404

    def test_redirect_queues_visit(self, client: TestClient, auth_headers, queue):
        alias = shorten(client, auth_headers).json()["alias"]

        client.get(f"/{alias}", headers={"User-Agent": CHROME_WINDOWS_UA}, follow_redirects=False)

        assert queue._queues[settings.queue_name][0].alias == alias
        assert queue._queues[settings.queue_name][0].os_type == "Windows"

    def test_unknown_alias_queues_nothing(self, client: TestClient, queue):
        client.get("/nonexistent", follow_redirects=False)
        assert not queue._queues.get(settings.queue_name)


class TestAnalytics:
    """Test analytics endpoints end to end"""

    def test_visit_is_counted(self, client: TestClient, auth_headers, drain_visits):
        alias = shorten(client, auth_headers, topic="activation").json()["alias"]

        client.get(f"/{alias}", headers={"User-Agent": CHROME_WINDOWS_UA}, follow_redirects=False)
        drain_visits()

        response = client.get(f"/analytics/{alias}", headers=auth_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["totalClicks"] == 1
        assert data["uniqueUsers"] == 1
        assert len(data["clicksByDate"]) == 1
        assert data["clicksByDate"][0]["count"] == 1
        assert data["osType"] == [{"osName": "Windows", "uniqueClicks": 1, "uniqueUsers": 1}]
        assert data["deviceType"] == [{"deviceName": "desktop", "uniqueClicks": 1, "uniqueUsers": 1}]

    def test_repeat_visits_from_same_client(self, client: TestClient, auth_headers, drain_visits):
        """Test that two visits from one IP are two clicks but one user"""
        alias = shorten(client, auth_headers).json()["alias"]

        client.get(f"/{alias}", follow_redirects=False)
        client.get(f"/{alias}", follow_redirects=False)
        drain_visits()

        data = client.get(f"/analytics/{alias}", headers=auth_headers).json()
        assert data["totalClicks"] == 2
        assert data["uniqueUsers"] == 1

    def test_analytics_refresh_after_new_visit(self, client: TestClient, auth_headers, drain_visits):
        """Test that a recorded visit evicts the cached analytics"""
        alias = shorten(client, auth_headers).json()["alias"]
        assert client.get(f"/analytics/{alias}", headers=auth_headers).json()["totalClicks"] == 0

        client.get(f"/{alias}", follow_redirects=False)
        drain_visits()

        assert client.get(f"/analytics/{alias}", headers=auth_headers).json()["totalClicks"] == 1
        assert client.get("/analytics/overall", headers=auth_headers).json()["totalClicks"] == 1

    def test_other_owner_alias_is_not_found(self, client: TestClient, auth_headers, other_auth_headers):
        alias = shorten(client, auth_headers).json()["alias"]

        response = client.get(f"/analytics/{alias}", headers=other_auth_headers)
        assert response.status_code == 404

    def test_analytics_requires_authentication(self, client: TestClient):
        assert client.get("/analytics/overall").status_code == 401

    def test_topic_analytics(self, client: TestClient, auth_headers, drain_visits):
        first = shorten(client, auth_headers, topic="retention").json()["alias"]
        second = shorten(client, auth_headers, topic="retention").json()["alias"]
        shorten(client, auth_headers, topic="acquisition")

        client.get(f"/{first}", follow_redirects=False)
        client.get(f"/{first}", follow_redirects=False)
        client.get(f"/{second}", follow_redirects=False)
        drain_visits()

        response = client.get("/analytics/topic/retention", headers=auth_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["totalClicks"] == 3
        assert data["uniqueUsers"] == 1
        assert {url["shortUrl"]: url["totalClicks"] for url in data["urls"]} == {
            f"{settings.base_url}/{first}": 2,
            f"{settings.base_url}/{second}": 1,
        }

    def test_unknown_topic(self, client: TestClient, auth_headers):
        response = client.get("/analytics/topic/marketing", headers=auth_headers)
        assert response.status_code == 404

    def test_topic_without_urls(self, client: TestClient, auth_headers):
        response = client.get("/analytics/topic/activation", headers=auth_headers)
        assert response.status_code == 404

    def test_overall_without_urls(self, client: TestClient, auth_headers):
        response = client.get("/analytics/overall", headers=auth_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["totalUrls"] == 0
        assert data["totalClicks"] == 0
        assert data["uniqueUsers"] == 0
        assert data["clicksByDate"] == []

    def test_overall(self, client: TestClient, auth_headers, other_auth_headers, drain_visits):
        first = shorten(client, auth_headers).json()["alias"]
        shorten(client, auth_headers, topic="activation")
        foreign = shorten(client, other_auth_headers).json()["alias"]

        client.get(f"/{first}", follow_redirects=False)
        client.get(f"/{foreign}", follow_redirects=False)
        drain_visits()

        data = client.get("/analytics/overall", headers=auth_headers).json()
        assert data["totalUrls"] == 2
        assert data["totalClicks"] == 1


class TestHealth:

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
