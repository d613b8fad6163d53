"""
Data access layer.

This package contains DAO classes that wrap the current SQLAlchemy session
and expose save, update, delete, load and search operations.
"""

from .base_dao import BaseDAO
from .generic_dao import GenericDAO
from .general_dao import GeneralDAO

__all__ = [
    "BaseDAO",
    "GenericDAO",
    "GeneralDAO",
]
