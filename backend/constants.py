"""
Library-wide constants and configuration keys.

This module centralizes the magic strings used by the DAOs and the search
layer so they are defined in a single place.
"""
from enum import Enum


class ConfigKeys:
    """Environment variables read by config.dao_config."""

    DATABASE_URL = 'DAO_DATABASE_URL'
    SQL_ECHO = 'DAO_SQL_ECHO'
    EXISTS_BATCH_SIZE = 'DAO_EXISTS_BATCH_SIZE'


class ResultMode(str, Enum):
    """
    Shape of each row returned by a search.

    - AUTO: MAP if any field has a key, SINGLE if there is one field, else ARRAY
    - ARRAY: each row is a tuple of field values
    - LIST: each row is a list of field values
    - MAP: each row is a dict keyed by field key (or property when no key)
    - SINGLE: each row is the value of the first field
    """

    AUTO = 'auto'
    ARRAY = 'array'
    LIST = 'list'
    MAP = 'map'
    SINGLE = 'single'


class MatchMode(str, Enum):
    """How string values of an example are matched."""

    EXACT = 'exact'
    START = 'start'
    END = 'end'
    ANYWHERE = 'anywhere'

    def to_pattern(self, value: str) -> str:
        """Wrap a value in LIKE wildcards for this mode."""
        if self is MatchMode.START:
            return f"{value}%"
        if self is MatchMode.END:
            return f"%{value}"
        if self is MatchMode.ANYWHERE:
            return f"%{value}%"
        return value


# Property path that designates the root entity of a search
ROOT_PROPERTY = ''

# Identifier values that mark an entity as never saved
UNSAVED_ID_VALUES = (None, 0)

DEFAULT_EXISTS_BATCH_SIZE = 500
