"""
Custom exception classes for the data access layer.

This module defines the exceptions raised by the DAOs and the search layer,
so callers can tell misuse of the API apart from failures of the database.
"""


class DAOError(Exception):
    """Base exception for all data access errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(DAOError):
    """Raised when the DAO or its settings are not configured properly"""

    def __init__(self, message: str, missing_keys: list[str] | None = None):
        details = {"missing_keys": missing_keys} if missing_keys else {}
        super().__init__(message, details)


class ValidationError(DAOError):
    """Raised when a search or an entity fails validation"""

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class MetadataError(DAOError):
    """Raised when a class or object is not a mapped entity"""

    def __init__(self, target: object, message: str | None = None):
        name = target.__name__ if isinstance(target, type) else type(target).__name__
        details = {"type": name}
        super().__init__(message or f"{name} is not a mapped entity", details)


class EntityNotFoundError(DAOError):
    """Raised when an entity that must exist has no matching row"""

    def __init__(self, entity_type: type, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        details = {"type": entity_type.__name__, "id": entity_id}
        super().__init__(f"No {entity_type.__name__} found with id {entity_id!r}", details)


class NonUniqueResultError(DAOError):
    """Raised when a unique search matches more than one result"""

    def __init__(self, search_class: type, count: int):
        details = {"search_class": search_class.__name__, "count": count}
        super().__init__(
            f"Search for {search_class.__name__} returned {count} results, expected at most one",
            details,
        )


class DatabaseError(DAOError):
    """Raised when database operations fail"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(message, details)
