"""
Structured Logging Utilities

Adds DAO context (entity type, identifiers, operation) to log records so
persistence activity can be traced per unit of work.
"""

import inspect
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, Iterator, Optional


# Context variable for operation-scoped logging context
_logging_context: ContextVar[Dict[str, Any]] = ContextVar('logging_context', default={})


class StructuredLogger:
    """
    Wrapper around standard logger that adds structured context.

    Usage:
        logger = StructuredLogger(__name__)
        logger.debug("Saved entity", extra={
            "entity_type": "Person",
            "entity_id": 42,
        })
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        context = _logging_context.get().copy()
        if extra:
            context.update(extra)
        return context

    def log(self, level: int, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.log(level, message, extra=self._add_context(extra), exc_info=exc_info)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.debug(message, extra=self._add_context(extra))

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.info(message, extra=self._add_context(extra))

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.warning(message, extra=self._add_context(extra))

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.error(message, extra=self._add_context(extra), exc_info=exc_info)


def set_logging_context(**kwargs):
    """
    Set logging context for the current unit of work.

    The context is included in every message logged through a
    StructuredLogger in the current thread or task.

    Example:
        set_logging_context(request_id="abc-123", tenant="acme")
    """
    context = _logging_context.get().copy()
    context.update(kwargs)
    _logging_context.set(context)


def get_logging_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return _logging_context.get().copy()


def clear_logging_context():
    """Clear the logging context."""
    _logging_context.set({})


@contextmanager
def logging_context(**kwargs) -> Iterator[None]:
    """Add context for the duration of a block, restoring the previous context after."""
    context = _logging_context.get().copy()
    context.update(kwargs)
    token = _logging_context.set(context)
    try:
        yield
    finally:
        _logging_context.reset(token)


def _type_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, type):
        return value.__name__
    return type(value).__name__


def log_operation(operation_name: str, level: int = logging.DEBUG):
    """
    Decorator logging start, completion and failure of a DAO operation.

    The entity type is taken from an ``entity_type``, ``search_class`` or ``entity``
    argument of the decorated function, passed by position or keyword.

    Example:
        @log_operation("save_or_update_batch")
        def _save_or_update_is_new_many(self, *entities):
            ...
    """
    def decorator(func):
        logger = StructuredLogger(func.__module__)
        signature = inspect.signature(func)

        def _context(args, kwargs) -> Dict[str, Any]:
            context: Dict[str, Any] = {"operation": operation_name}
            try:
                arguments = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                arguments = kwargs
            for key in ("entity_type", "type", "search_class", "entity"):
                if arguments.get(key) is not None:
                    context["entity_type"] = _type_name(arguments[key])
                    break
            return context

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            context = _context(args, kwargs)
            logger.log(level, f"Starting {operation_name}", extra=context)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context)
                raise
            logger.log(level, f"Completed {operation_name}", extra=context)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            context = _context(args, kwargs)
            logger.log(level, f"Starting {operation_name}", extra=context)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context)
                raise
            logger.log(level, f"Completed {operation_name}", extra=context)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
