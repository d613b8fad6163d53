"""
Search Response DTOs
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from search.search import ISearch
from search.search_result import SearchResult


class SearchResponse(BaseModel):
    """
    Response DTO for one page of search results.

    Results are passed through as returned by the search: entities, rows
    or dicts depending on the fields and result mode.
    """

    results: List[Any] = Field(description="Results of the current page")
    total_count: int = Field(description="Number of results without paging, -1 if not counted")
    first_result: int = Field(0, description="Offset of the first result")
    max_results: Optional[int] = Field(None, description="Page size, None for no limit")
    has_more: bool = Field(False, description="More results follow this page")

    @classmethod
    def from_result(cls, result: SearchResult, search: ISearch) -> "SearchResponse":
        max_results = search.max_results or None
        first_result = search.first_result or 0
        if not first_result and search.page and max_results:
            first_result = search.page * max_results
        has_more = (
            result.total_count >= 0
            and first_result + len(result.result) < result.total_count
        )
        return cls(
            results=result.result,
            total_count=result.total_count,
            first_result=first_result,
            max_results=max_results,
            has_more=has_more,
        )
