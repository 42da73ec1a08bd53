from .geo import lookup_geolocation
from .user_agent import parse_user_agent

__all__ = ["lookup_geolocation", "parse_user_agent"]
