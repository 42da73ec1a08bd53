"""
IP geolocation via ip-api.com.

Best-effort: private, loopback and unparseable addresses, lookup errors
and timeouts all yield an all-"Unknown" location instead of raising.
"""

import ipaddress
import logging
from functools import lru_cache
from typing import Optional, Tuple

import httpx

from linkstats_app.config import settings
from linkstats_app.storage.models import GeoLocation

logger = logging.getLogger(__name__)

_UNKNOWN: Tuple[Optional[str], Optional[str], Optional[float], Optional[float]] = (None, None, None, None)


def is_public_ip(ip: str) -> bool:
    """True only for a syntactically valid, globally routable address"""
    try:
        return ipaddress.ip_address(ip).is_global
    except ValueError:
        return False


# LRU cache for geo data (max 10000 entries). Failures raise, so only answers are memoised.
@lru_cache(maxsize=10000)
def _lookup_cached(ip: str) -> Tuple[Optional[str], Optional[str], Optional[float], Optional[float]]:
    """
    Query ip-api.com for one address.

    Returns tuple: (country, city, latitude, longitude); all None when
    ip-api has no data for the address.

    Raises:
        httpx.HTTPError: transport failure, timeout or non-2xx status
        ValueError: response body is not JSON
    """
    with httpx.Client(timeout=settings.geo_lookup_timeout) as client:
        response = client.get(
            f"{settings.geo_lookup_url}/{ip}",
            params={"fields": "status,country,city,lat,lon"}
        )
    response.raise_for_status()
    data = response.json()
    if data.get("status") != "success":
        return _UNKNOWN
    return (data.get("country"), data.get("city"), data.get("lat"), data.get("lon"))


def lookup_geolocation(ip: str) -> GeoLocation:
    """Resolve an IP to a GeoLocation, falling back to "Unknown" fields"""
    if not settings.geo_lookup_enabled or not is_public_ip(ip):
        return GeoLocation()

    try:
        country, city, latitude, longitude = _lookup_cached(ip)
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("Geo lookup failed for %s: %s", ip, e)
        return GeoLocation()

    return GeoLocation(
        country=country or "Unknown",
        city=city or "Unknown",
        latitude=latitude,
        longitude=longitude
    )
