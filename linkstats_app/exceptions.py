"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; nothing below the API
layer knows about status codes.
"""


class LinkStatsError(Exception):
    """Base class for all service errors"""


class NotFoundError(LinkStatsError):
    """Alias, topic or mapping does not exist (or belongs to someone else)"""


class AliasConflictError(LinkStatsError):
    """Custom alias is already taken"""

    def __init__(self, alias: str):
        super().__init__(f"Alias '{alias}' is already in use")
        self.alias = alias


class InvalidInputError(LinkStatsError):
    """Malformed input to the shorten operation"""


class DependencyFailureError(LinkStatsError):
    """A durable store operation failed on the request path"""
