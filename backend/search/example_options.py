"""Options controlling how an example entity is turned into a filter."""

from dataclasses import dataclass, field
from typing import Set

from constants import MatchMode


@dataclass
class ExampleOptions:
    """
    Options for SearchProcessor.get_filter_from_example.

    - exclude_nulls: skip properties whose value is None (otherwise they must be null)
    - exclude_zeros: skip numeric properties whose value is 0
    - exclude_props: property names never used
    - match_mode: how string values are matched
    - ignore_case: compare strings case-insensitively
    """

    exclude_nulls: bool = True
    exclude_zeros: bool = False
    exclude_props: Set[str] = field(default_factory=set)
    match_mode: MatchMode = MatchMode.EXACT
    ignore_case: bool = False

    def exclude_prop(self, *names: str) -> "ExampleOptions":
        self.exclude_props.update(names)
        return self
