"""
Records written to the visit (event) store.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "Unknown"


class GeoLocation(BaseModel):
    """Best-effort location derived from the visitor IP"""

    country: str = UNKNOWN
    city: str = UNKNOWN
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class VisitEvent(BaseModel):
    """One recorded redirect. Immutable once written."""

    mapping_id: int
    alias: str
    timestamp: datetime
    ip_address: str
    user_agent: Optional[str] = None
    geolocation: GeoLocation = Field(default_factory=GeoLocation)
    os_type: str = UNKNOWN
    device_type: str = "desktop"

    model_config = ConfigDict(frozen=True)
