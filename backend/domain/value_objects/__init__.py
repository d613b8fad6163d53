"""
Domain Value Objects

Value objects are immutable types compared by value, not by identity.

- FilterOperator: Comparison or logical operator of a search filter
- FieldOperator: Projection or aggregate applied to a search result field
"""

from .field_operator import FieldOperator
from .filter_operator import FilterOperator

__all__ = ["FieldOperator", "FilterOperator"]
