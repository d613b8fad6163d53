"""
Runtime Configuration for the Data Access Layer

Reads the database URL and tuning knobs from environment variables.

Includes:
- Database URL used by database.py to build the default engine
- SQL echo flag for debugging generated statements
- Batch size for identifier existence queries
"""
import os
import logging

from constants import ConfigKeys, DEFAULT_EXISTS_BATCH_SIZE
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = 'sqlite:///:memory:'


def get_database_url() -> str:
    """
    Get the database URL for the default engine.

    Returns:
        Value of DAO_DATABASE_URL, or an in-memory SQLite URL when unset
    """
    url = os.environ.get(ConfigKeys.DATABASE_URL, '').strip()
    if not url:
        return DEFAULT_DATABASE_URL
    return url


def is_sql_echo_enabled() -> bool:
    """
    Check if SQL statements should be echoed to the log.

    Returns:
        True if DAO_SQL_ECHO is set to 'true', '1' or 'yes' (case-insensitive)
    """
    value = os.environ.get(ConfigKeys.SQL_ECHO, 'false').lower()
    return value in ('true', '1', 'yes')


def get_exists_batch_size() -> int:
    """
    Get the maximum number of ids checked by a single existence query.

    Returns:
        Positive batch size from DAO_EXISTS_BATCH_SIZE (default 500)

    Raises:
        ConfigurationError: If the variable is not a positive integer
    """
    raw = os.environ.get(ConfigKeys.EXISTS_BATCH_SIZE)
    if raw is None or raw.strip() == '':
        return DEFAULT_EXISTS_BATCH_SIZE

    try:
        size = int(raw)
    except ValueError:
        raise ConfigurationError(
            f"{ConfigKeys.EXISTS_BATCH_SIZE} must be an integer, got {raw!r}",
            missing_keys=[ConfigKeys.EXISTS_BATCH_SIZE],
        )

    if size < 1:
        raise ConfigurationError(
            f"{ConfigKeys.EXISTS_BATCH_SIZE} must be positive, got {size}",
            missing_keys=[ConfigKeys.EXISTS_BATCH_SIZE],
        )
    return size


DATABASE_URL = get_database_url()
SQL_ECHO = is_sql_echo_enabled()

if SQL_ECHO:
    logger.info("SQL echo enabled")
