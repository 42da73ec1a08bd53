"""
Analytics response schemas.

``uniqueUsers`` everywhere counts distinct origin IP addresses: shared
IPs (NAT, offices) undercount and rotating IPs overcount real people.
"""

from typing import List

from pydantic import Field

from .url import CamelModel

UNIQUE_USERS_NOTE = "Distinct visitor IP addresses (approximation of unique users)"


class DateCount(CamelModel):
    date: str = Field(..., description="UTC calendar date, YYYY-MM-DD")
    count: int


class OsStat(CamelModel):
    os_name: str
    unique_clicks: int = Field(..., description="Clicks from this OS")
    unique_users: int = Field(..., description=UNIQUE_USERS_NOTE)


class DeviceStat(CamelModel):
    device_name: str
    unique_clicks: int = Field(..., description="Clicks from this device type")
    unique_users: int = Field(..., description=UNIQUE_USERS_NOTE)


class UrlAnalytics(CamelModel):
    total_clicks: int
    unique_users: int = Field(..., description=UNIQUE_USERS_NOTE)
    clicks_by_date: List[DateCount] = Field(default_factory=list)
    os_type: List[OsStat] = Field(default_factory=list)
    device_type: List[DeviceStat] = Field(default_factory=list)


class TopicUrlStat(CamelModel):
    short_url: str
    total_clicks: int
    unique_users: int = Field(..., description=UNIQUE_USERS_NOTE)


class TopicAnalytics(CamelModel):
    total_clicks: int
    unique_users: int = Field(..., description=UNIQUE_USERS_NOTE)
    clicks_by_date: List[DateCount] = Field(default_factory=list)
    urls: List[TopicUrlStat] = Field(default_factory=list)


class OverallAnalytics(CamelModel):
    total_urls: int = 0
    total_clicks: int = 0
    unique_users: int = Field(0, description=UNIQUE_USERS_NOTE)
    clicks_by_date: List[DateCount] = Field(default_factory=list)
    os_type: List[OsStat] = Field(default_factory=list)
    device_type: List[DeviceStat] = Field(default_factory=list)
