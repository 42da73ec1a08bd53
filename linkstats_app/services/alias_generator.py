"""
Alias generation and validation.

Random aliases are nanoid strings over the URL-safe alphabet: with 64
symbols and 8 characters there are 2^48 possible values, so a collision
is rare but still checked for and retried.
"""

import logging
import re
from typing import Callable, Optional

from nanoid import generate as nanoid_generate
from sqlalchemy.orm import Session

from linkstats_app.config import settings
from linkstats_app.exceptions import AliasConflictError, InvalidInputError
from linkstats_app.models.url import UrlMapping

logger = logging.getLogger(__name__)

ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
CUSTOM_ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Paths served by the app itself; an alias with one of these names could never be reached.
# "overall" would shadow /analytics/{alias} with /analytics/overall.
RESERVED_ALIASES = frozenset({
    "analytics", "shorten", "health", "docs", "redoc", "openapi.json", "auth", "api", "overall",
})


def validate_custom_alias(alias: str) -> None:
    """Raise InvalidInputError when a caller-supplied alias is unusable"""
    if len(alias) < settings.custom_alias_min_length:
        raise InvalidInputError(
            f"Alias must be at least {settings.custom_alias_min_length} characters"
        )
    if len(alias) > settings.custom_alias_max_length:
        raise InvalidInputError(
            f"Alias must be at most {settings.custom_alias_max_length} characters"
        )
    if not CUSTOM_ALIAS_PATTERN.match(alias):
        raise InvalidInputError("Alias can only contain letters, digits, '-' and '_'")
    if alias.lower() in RESERVED_ALIASES:
        raise InvalidInputError(f"'{alias}' is a reserved word and cannot be used")


class AliasGenerator:
    """Produces unique aliases, or validates custom ones, against the mapping store"""

    def __init__(
        self,
        length: int = settings.alias_length,
        random_source: Callable[[str, int], str] = nanoid_generate
    ):
        self.length = length
        self.random_source = random_source

    @staticmethod
    def is_taken(alias: str, db: Session) -> bool:
        return db.query(UrlMapping.id).filter(UrlMapping.alias == alias).first() is not None

    def generate(self, db: Session, custom_alias: Optional[str] = None) -> str:
        """
        Return an alias that is free in the mapping store at the time of the check.

        Raises:
            InvalidInputError: custom alias is malformed or reserved
            AliasConflictError: custom alias already exists
        """
        if custom_alias is not None:
            validate_custom_alias(custom_alias)
            if self.is_taken(custom_alias, db):
                raise AliasConflictError(custom_alias)
            return custom_alias

        attempt = 0
        while True:
            attempt += 1
            alias = self.random_source(ALPHABET, self.length)
            if not self.is_taken(alias, db):
                return alias
            logger.warning("Generated alias collided with an existing mapping (attempt %d)", attempt)
