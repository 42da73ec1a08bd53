"""
User-Agent parsing for visit events.
"""

from typing import Optional, Tuple

from user_agents import parse

MOBILE = "mobile"
DESKTOP = "desktop"


def parse_user_agent(user_agent: Optional[str]) -> Tuple[str, str]:
    """
    Derive (os_type, device_type) from a raw User-Agent header.

    Device type is binary: phones count as mobile, everything else
    (tablets, bots, empty headers) as desktop.
    """
    if not user_agent:
        return "Unknown", DESKTOP

    parsed = parse(user_agent)
    os_type = parsed.os.family
    if not os_type or os_type == "Other":
        os_type = "Unknown"

    return os_type, MOBILE if parsed.is_mobile else DESKTOP
