"""
Cache key namespace.

    url:{alias}                  alias -> destination
    analytics:{alias}:{owner}    per-alias analytics
    topic:{topic}:{owner}        per-topic analytics
    overall:{owner}              owner-wide analytics

Patterns use Redis MATCH syntax: ``*``, ``?`` and ``[...]`` are wildcards
and a backslash makes the next character literal.
"""

import re

_GLOB_SPECIAL = re.compile(r"([\[\]*?\\])")


def escape_glob(value: str) -> str:
    """Make ``value`` match only itself inside a pattern"""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def url_key(alias: str) -> str:
    return f"url:{alias}"


def analytics_key(alias: str, owner_id: str) -> str:
    return f"analytics:{alias}:{owner_id}"


def topic_key(topic: str, owner_id: str) -> str:
    return f"topic:{topic}:{owner_id}"


def topic_pattern(owner_id: str) -> str:
    """Pattern matching every topic entry of one owner"""
    return f"topic:*:{escape_glob(owner_id)}"


def overall_key(owner_id: str) -> str:
    return f"overall:{owner_id}"
