"""
Search Request DTOs

DTOs describing a search in plain data, for callers that receive search
parameters from outside the process (query strings, JSON bodies).
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from domain.value_objects import FilterOperator
from search.filter import Filter
from search.search import Search
from search.sort import Sort


class FilterRequest(BaseModel):
    """
    Request DTO for a single filter.

    Logical operators (and, or, not) and collection operators (some, all,
    none) take their nested filters from ``filters``; every other operator
    compares ``property`` with ``value``.
    """

    property: Optional[str] = Field(None, description="Dotted property path")
    operator: FilterOperator = Field(FilterOperator.EQUAL, description="Filter operator")
    value: Any = Field(None, description="Operand of comparison operators")
    filters: List["FilterRequest"] = Field(default_factory=list, description="Nested filters")

    @field_validator("operator", mode="before")
    @classmethod
    def parse_operator(cls, v):
        """Accept operator names in any case."""
        if isinstance(v, str):
            return FilterOperator.from_string(v)
        return v

    @model_validator(mode="after")
    def check_shape(self):
        """Ensure the property and nested filters fit the operator."""
        operator = self.operator
        if operator in (FilterOperator.AND, FilterOperator.OR):
            return self
        if operator is FilterOperator.NOT:
            if len(self.filters) != 1:
                raise ValueError("not filter needs exactly one nested filter")
            return self
        if not self.property:
            raise ValueError(f"{operator.value} filter needs a property")
        if operator.is_collection() and len(self.filters) != 1:
            raise ValueError(f"{operator.value} filter needs exactly one nested filter")
        return self

    def to_filter(self) -> Filter:
        operator = self.operator
        if operator in (FilterOperator.AND, FilterOperator.OR):
            return Filter(None, [f.to_filter() for f in self.filters], operator)
        if operator is FilterOperator.NOT:
            return Filter.not_(self.filters[0].to_filter())
        if operator.is_collection():
            return Filter(self.property, self.filters[0].to_filter(), operator)
        if not operator.takes_value():
            return Filter(self.property, True, operator)
        return Filter(self.property, self.value, operator)


FilterRequest.model_rebuild()


class SortRequest(BaseModel):
    """Request DTO for a sort on one property."""

    property: str = Field(description="Dotted property path")
    desc: bool = Field(False, description="Sort descending")
    ignore_case: bool = Field(False, description="Compare lowercased values")


class SearchRequest(BaseModel):
    """
    Request DTO for a search.

    Provides a clear contract for filtering, sorting, eager fetching and
    paging parameters.
    """

    filters: List[FilterRequest] = Field(default_factory=list, description="Top-level filters")
    disjunction: bool = Field(False, description="OR the top-level filters instead of AND")
    sorts: List[SortRequest] = Field(default_factory=list, description="Sort order")
    fetches: List[str] = Field(default_factory=list, description="Associations to eager load")
    distinct: bool = Field(False, description="Return distinct results")
    max_results: int = Field(0, description="Maximum number of results, 0 for no limit")
    first_result: int = Field(0, description="Offset of the first result")
    page: int = Field(0, description="Page number, used when first_result is 0")

    model_config = {
        "json_schema_extra": {
            "example": {
                "filters": [
                    {"property": "last_name", "operator": "equal", "value": "Smith"},
                    {"property": "age", "operator": "greater_or_equal", "value": 18},
                ],
                "sorts": [{"property": "first_name"}],
                "max_results": 20,
                "page": 1,
            }
        }
    }

    @field_validator("max_results")
    @classmethod
    def validate_max_results(cls, v):
        """Ensure max_results is within reasonable bounds."""
        if v < 0 or v > 1000:
            raise ValueError("max_results must be between 0 and 1000")
        return v

    @field_validator("first_result", "page")
    @classmethod
    def validate_offset(cls, v):
        """Ensure offsets are non-negative."""
        if v < 0:
            raise ValueError("Offset must be non-negative")
        return v

    def to_search(self, search_class: Optional[type] = None) -> Search:
        """Build a Search for the given class from this request."""
        search = Search(search_class)
        search.add_filters(*[f.to_filter() for f in self.filters])
        search.set_disjunction(self.disjunction)
        for sort in self.sorts:
            search.add_sort(Sort(sort.property, sort.desc, sort.ignore_case))
        for fetch in self.fetches:
            search.add_fetch(fetch)
        search.set_distinct(self.distinct)
        if self.max_results:
            search.set_max_results(self.max_results)
        if self.first_result:
            search.set_first_result(self.first_result)
        if self.page:
            search.set_page(self.page)
        return search
