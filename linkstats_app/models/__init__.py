"""
Database models for the link service.

Note: Visit events are stored in the separate analytics database
(see linkstats_app.storage), not in SQLAlchemy models.
"""

from .url import UrlMapping, Topic

__all__ = ["UrlMapping", "Topic"]
