"""Result of a combined search and count."""

from dataclasses import dataclass, field
from typing import Any, List


@dataclass
class SearchResult:
    """One page of results plus the total count ignoring paging."""

    result: List[Any] = field(default_factory=list)
    total_count: int = -1
