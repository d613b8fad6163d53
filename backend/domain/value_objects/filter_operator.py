"""
FilterOperator Value Object

Immutable representation of the operator a search filter applies.
"""

from enum import Enum


class FilterOperator(str, Enum):
    """
    Operator of a search filter.

    Comparison operators compare a property with the filter value, null and
    empty checks ignore the value, logical operators combine nested filters,
    and collection operators test the elements of a to-many association.
    """

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    LESS_THAN = "less_than"
    GREATER_THAN = "greater_than"
    LESS_OR_EQUAL = "less_or_equal"
    GREATER_OR_EQUAL = "greater_or_equal"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"
    NOT_IN = "not_in"
    NULL = "null"
    NOT_NULL = "not_null"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"
    AND = "and"
    OR = "or"
    NOT = "not"
    SOME = "some"
    ALL = "all"
    NONE = "none"

    def is_logical(self) -> bool:
        """Check if this operator combines nested filters (AND, OR, NOT)."""
        return self in {FilterOperator.AND, FilterOperator.OR, FilterOperator.NOT}

    def is_collection(self) -> bool:
        """Check if this operator applies a nested filter to collection elements."""
        return self in {FilterOperator.SOME, FilterOperator.ALL, FilterOperator.NONE}

    def takes_value(self) -> bool:
        """Check if this operator compares the property with a value."""
        return not (
            self.is_logical()
            or self.is_collection()
            or self in {
                FilterOperator.NULL,
                FilterOperator.NOT_NULL,
                FilterOperator.EMPTY,
                FilterOperator.NOT_EMPTY,
            }
        )

    def takes_list_value(self) -> bool:
        """Check if this operator expects a collection of values."""
        return self in {FilterOperator.IN, FilterOperator.NOT_IN}

    @classmethod
    def from_string(cls, value: str) -> "FilterOperator":
        """
        Create FilterOperator from string value.

        Args:
            value: String representation, case-insensitive

        Returns:
            FilterOperator instance

        Raises:
            ValueError: If value is not a valid operator
        """
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid filter operator: {value}")
