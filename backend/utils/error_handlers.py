"""
Error handling decorators for DAO operations.

Centralizes the translation of SQLAlchemy exceptions into the library's own
exception hierarchy so every DAO method reports failures the same way.
"""

import inspect
import logging
from functools import wraps
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from exceptions import DAOError, DatabaseError

logger = logging.getLogger(__name__)


def translate_errors(operation_name: str):
    """
    Decorator converting SQLAlchemy errors into DatabaseError.

    DAOError subclasses raised inside the wrapped function pass through
    untouched, so nested DAO calls are translated only once.

    Args:
        operation_name: Name of the DAO operation (e.g., "save")

    Example:
        @translate_errors("delete_by_id")
        def _delete_by_id(self, type, id):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except DAOError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"{operation_name} - Database error: {e}")
                raise DatabaseError(operation_name, str(e)) from e

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except DAOError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"{operation_name} - Database error: {e}")
                raise DatabaseError(operation_name, str(e)) from e

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
