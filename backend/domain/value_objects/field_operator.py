"""
FieldOperator Value Object

Immutable representation of the projection applied to a search result field.
"""

from enum import Enum


class FieldOperator(str, Enum):
    """Projection applied to a selected property."""

    PROPERTY = "property"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    MAX = "max"
    MIN = "min"
    SUM = "sum"
    AVG = "avg"

    def is_aggregate(self) -> bool:
        """Check if this operator aggregates rows (everything except PROPERTY)."""
        return self is not FieldOperator.PROPERTY
