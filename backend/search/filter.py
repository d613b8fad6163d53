"""
Search Filters

A filter is a single criterion on a property path, or a logical combination
of other filters. Filters compose with &, | and ~ the same way query
specifications do:

    adults = Filter.greater_or_equal("age", 18)
    smiths = Filter.equal("last_name", "Smith")
    criteria = adults & ~smiths
"""

from collections.abc import Iterable
from typing import Any, List, Optional

from domain.value_objects import FilterOperator


class Filter:
    """
    Criterion applied to the entities of a search.

    For comparison operators ``value`` holds the operand. For AND and OR it
    holds the list of nested filters, for NOT and the collection operators
    (SOME, ALL, NONE) it holds the single nested filter.
    """

    def __init__(
        self,
        property: Optional[str] = None,
        value: Any = None,
        operator: FilterOperator = FilterOperator.EQUAL,
    ):
        self.property = property
        self.value = value
        self.operator = FilterOperator(operator)

    # Comparison builders

    @staticmethod
    def equal(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.EQUAL)

    @staticmethod
    def not_equal(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.NOT_EQUAL)

    @staticmethod
    def less_than(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.LESS_THAN)

    @staticmethod
    def greater_than(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.GREATER_THAN)

    @staticmethod
    def less_or_equal(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.LESS_OR_EQUAL)

    @staticmethod
    def greater_or_equal(property: str, value: Any) -> "Filter":
        return Filter(property, value, FilterOperator.GREATER_OR_EQUAL)

    @staticmethod
    def like(property: str, pattern: str) -> "Filter":
        """Case-sensitive SQL LIKE (use % and _ as wildcards)."""
        return Filter(property, pattern, FilterOperator.LIKE)

    @staticmethod
    def ilike(property: str, pattern: str) -> "Filter":
        """Case-insensitive SQL LIKE."""
        return Filter(property, pattern, FilterOperator.ILIKE)

    @staticmethod
    def in_(property: str, *values: Any) -> "Filter":
        """Property is one of the values; accepts varargs or a single iterable."""
        return Filter(property, _as_list(values), FilterOperator.IN)

    @staticmethod
    def not_in(property: str, *values: Any) -> "Filter":
        return Filter(property, _as_list(values), FilterOperator.NOT_IN)

    # Null and empty checks

    @staticmethod
    def is_null(property: str) -> "Filter":
        return Filter(property, True, FilterOperator.NULL)

    @staticmethod
    def is_not_null(property: str) -> "Filter":
        return Filter(property, True, FilterOperator.NOT_NULL)

    @staticmethod
    def is_empty(property: str) -> "Filter":
        """Null column, empty string, missing reference or empty collection."""
        return Filter(property, True, FilterOperator.EMPTY)

    @staticmethod
    def is_not_empty(property: str) -> "Filter":
        return Filter(property, True, FilterOperator.NOT_EMPTY)

    # Logical builders

    @staticmethod
    def and_(*filters: "Filter") -> "Filter":
        return Filter(None, list(filters), FilterOperator.AND)

    @staticmethod
    def or_(*filters: "Filter") -> "Filter":
        return Filter(None, list(filters), FilterOperator.OR)

    @staticmethod
    def not_(filter: "Filter") -> "Filter":
        return Filter(None, filter, FilterOperator.NOT)

    # Collection builders

    @staticmethod
    def some(property: str, filter: "Filter") -> "Filter":
        """At least one element of the collection matches the nested filter."""
        return Filter(property, filter, FilterOperator.SOME)

    @staticmethod
    def all(property: str, filter: "Filter") -> "Filter":
        """Every element of the collection matches the nested filter."""
        return Filter(property, filter, FilterOperator.ALL)

    @staticmethod
    def none(property: str, filter: "Filter") -> "Filter":
        """No element of the collection matches the nested filter."""
        return Filter(property, filter, FilterOperator.NONE)

    # Composition

    def __and__(self, other: "Filter") -> "Filter":
        return Filter.and_(self, other)

    def __or__(self, other: "Filter") -> "Filter":
        return Filter.or_(self, other)

    def __invert__(self) -> "Filter":
        return Filter.not_(self)

    def add(self, filter: "Filter") -> "Filter":
        """Append a nested filter to an AND or OR filter."""
        if self.operator not in (FilterOperator.AND, FilterOperator.OR):
            raise ValueError(f"Cannot add a nested filter to a {self.operator.value} filter")
        if self.value is None:
            self.value = []
        self.value.append(filter)
        return self

    def values_as_list(self) -> List[Any]:
        """Return the value as a list (wrapping single values)."""
        if self.value is None:
            return []
        return _as_list((self.value,))

    def is_ignored(self) -> bool:
        """
        Check if this filter imposes no restriction.

        Value-taking filters with a None value and logical or collection
        filters without nested filters are ignored by the processor.
        """
        if self.operator.takes_value():
            return self.value is None
        if self.operator in (FilterOperator.AND, FilterOperator.OR):
            return not self.value or all(f is None or f.is_ignored() for f in self.value)
        if self.operator is FilterOperator.NOT:
            return self.value is None or self.value.is_ignored()
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return (
            self.property == other.property
            and self.operator == other.operator
            and self.value == other.value
        )

    def __hash__(self):
        return hash((self.property, self.operator))

    def __repr__(self) -> str:
        if self.operator.is_logical():
            return f"Filter({self.operator.value}, {self.value!r})"
        return f"Filter({self.property!r} {self.operator.value} {self.value!r})"


def _as_list(values) -> List[Any]:
    if len(values) == 1:
        single = values[0]
        if isinstance(single, Iterable) and not isinstance(single, (str, bytes)):
            return list(single)
    return list(values)
