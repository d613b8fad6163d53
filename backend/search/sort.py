"""Ordering of search results."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Sort:
    """Order by a property path, optionally descending and case-insensitive."""

    property: str
    desc: bool = False
    ignore_case: bool = False

    @classmethod
    def asc(cls, property: str, ignore_case: bool = False) -> "Sort":
        return cls(property, False, ignore_case)

    @classmethod
    def descending(cls, property: str, ignore_case: bool = False) -> "Sort":
        return cls(property, True, ignore_case)
