from .url import ShortenRequest, ShortenResponse
from .analytics import UrlAnalytics, TopicAnalytics, OverallAnalytics

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "UrlAnalytics",
    "TopicAnalytics",
    "OverallAnalytics",
]
