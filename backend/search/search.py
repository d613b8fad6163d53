"""
Search Descriptors

ISearch describes what a search returns: the class searched, filters,
ordering, projected fields, eager fetches and paging. Search is the mutable
implementation with a fluent builder API:

    search = (
        Search(Person)
        .add_filter_equal("last_name", "Smith")
        .add_sort_desc("age")
        .set_max_results(10)
    )
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from constants import ResultMode, ROOT_PROPERTY
from domain.value_objects import FieldOperator
from .field import Field
from .filter import Filter
from .sort import Sort


class ISearch(ABC):
    """Read-only view of a search consumed by the search processor."""

    @property
    @abstractmethod
    def search_class(self) -> Optional[type]:
        pass

    @property
    @abstractmethod
    def filters(self) -> List[Filter]:
        pass

    @property
    @abstractmethod
    def disjunction(self) -> bool:
        """True when top-level filters are combined with OR instead of AND."""
        pass

    @property
    @abstractmethod
    def sorts(self) -> List[Sort]:
        pass

    @property
    @abstractmethod
    def fields(self) -> List[Field]:
        pass

    @property
    @abstractmethod
    def distinct(self) -> bool:
        pass

    @property
    @abstractmethod
    def fetches(self) -> List[str]:
        pass

    @property
    @abstractmethod
    def first_result(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def max_results(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def page(self) -> Optional[int]:
        pass

    @property
    @abstractmethod
    def result_mode(self) -> ResultMode:
        pass


class Search(ISearch):
    """Mutable search; every mutator returns the search for chaining."""

    def __init__(self, search_class: Optional[type] = None):
        self._search_class = search_class
        self._filters: List[Filter] = []
        self._disjunction = False
        self._sorts: List[Sort] = []
        self._fields: List[Field] = []
        self._distinct = False
        self._fetches: List[str] = []
        self._first_result: Optional[int] = None
        self._max_results: Optional[int] = None
        self._page: Optional[int] = None
        self._result_mode = ResultMode.AUTO

    # ISearch

    @property
    def search_class(self) -> Optional[type]:
        return self._search_class

    @property
    def filters(self) -> List[Filter]:
        return self._filters

    @property
    def disjunction(self) -> bool:
        return self._disjunction

    @property
    def sorts(self) -> List[Sort]:
        return self._sorts

    @property
    def fields(self) -> List[Field]:
        return self._fields

    @property
    def distinct(self) -> bool:
        return self._distinct

    @property
    def fetches(self) -> List[str]:
        return self._fetches

    @property
    def first_result(self) -> Optional[int]:
        return self._first_result

    @property
    def max_results(self) -> Optional[int]:
        return self._max_results

    @property
    def page(self) -> Optional[int]:
        return self._page

    @property
    def result_mode(self) -> ResultMode:
        return self._result_mode

    # Search class

    def set_search_class(self, search_class: Optional[type]) -> "Search":
        self._search_class = search_class
        return self

    # Filters

    def add_filter(self, filter: Filter) -> "Search":
        self._filters.append(filter)
        return self

    def add_filters(self, *filters: Filter) -> "Search":
        self._filters.extend(filters)
        return self

    def remove_filter(self, filter: Filter) -> "Search":
        self._filters.remove(filter)
        return self

    def clear_filters(self) -> "Search":
        self._filters.clear()
        return self

    def add_filter_equal(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.equal(property, value))

    def add_filter_not_equal(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.not_equal(property, value))

    def add_filter_less_than(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.less_than(property, value))

    def add_filter_greater_than(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.greater_than(property, value))

    def add_filter_less_or_equal(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.less_or_equal(property, value))

    def add_filter_greater_or_equal(self, property: str, value: Any) -> "Search":
        return self.add_filter(Filter.greater_or_equal(property, value))

    def add_filter_like(self, property: str, pattern: str) -> "Search":
        return self.add_filter(Filter.like(property, pattern))

    def add_filter_ilike(self, property: str, pattern: str) -> "Search":
        return self.add_filter(Filter.ilike(property, pattern))

    def add_filter_in(self, property: str, *values: Any) -> "Search":
        return self.add_filter(Filter.in_(property, *values))

    def add_filter_not_in(self, property: str, *values: Any) -> "Search":
        return self.add_filter(Filter.not_in(property, *values))

    def add_filter_null(self, property: str) -> "Search":
        return self.add_filter(Filter.is_null(property))

    def add_filter_not_null(self, property: str) -> "Search":
        return self.add_filter(Filter.is_not_null(property))

    def add_filter_empty(self, property: str) -> "Search":
        return self.add_filter(Filter.is_empty(property))

    def add_filter_not_empty(self, property: str) -> "Search":
        return self.add_filter(Filter.is_not_empty(property))

    def add_filter_and(self, *filters: Filter) -> "Search":
        return self.add_filter(Filter.and_(*filters))

    def add_filter_or(self, *filters: Filter) -> "Search":
        return self.add_filter(Filter.or_(*filters))

    def add_filter_not(self, filter: Filter) -> "Search":
        return self.add_filter(Filter.not_(filter))

    def add_filter_some(self, property: str, filter: Filter) -> "Search":
        return self.add_filter(Filter.some(property, filter))

    def add_filter_all(self, property: str, filter: Filter) -> "Search":
        return self.add_filter(Filter.all(property, filter))

    def add_filter_none(self, property: str, filter: Filter) -> "Search":
        return self.add_filter(Filter.none(property, filter))

    def set_disjunction(self, disjunction: bool) -> "Search":
        self._disjunction = disjunction
        return self

    # Sorts

    def add_sort(self, sort: Sort) -> "Search":
        self._sorts.append(sort)
        return self

    def add_sort_asc(self, property: str, ignore_case: bool = False) -> "Search":
        return self.add_sort(Sort(property, False, ignore_case))

    def add_sort_desc(self, property: str, ignore_case: bool = False) -> "Search":
        return self.add_sort(Sort(property, True, ignore_case))

    def clear_sorts(self) -> "Search":
        self._sorts.clear()
        return self

    # Fields

    def add_field(
        self,
        property: str = ROOT_PROPERTY,
        operator: FieldOperator = FieldOperator.PROPERTY,
        key: Optional[str] = None,
    ) -> "Search":
        self._fields.append(Field(property, FieldOperator(operator), key))
        return self

    def clear_fields(self) -> "Search":
        self._fields.clear()
        return self

    def set_distinct(self, distinct: bool) -> "Search":
        self._distinct = distinct
        return self

    def set_result_mode(self, result_mode: ResultMode) -> "Search":
        self._result_mode = ResultMode(result_mode)
        return self

    # Fetches

    def add_fetch(self, property: str) -> "Search":
        if property not in self._fetches:
            self._fetches.append(property)
        return self

    def clear_fetches(self) -> "Search":
        self._fetches.clear()
        return self

    # Paging

    def set_first_result(self, first_result: Optional[int]) -> "Search":
        self._first_result = first_result
        return self

    def set_max_results(self, max_results: Optional[int]) -> "Search":
        self._max_results = max_results
        return self

    def set_page(self, page: Optional[int]) -> "Search":
        self._page = page
        return self

    def clear_paging(self) -> "Search":
        self._first_result = None
        self._max_results = None
        self._page = None
        return self

    def copy(self) -> "Search":
        """Shallow copy with independent filter, sort, field and fetch lists."""
        other = Search(self._search_class)
        other._filters = list(self._filters)
        other._disjunction = self._disjunction
        other._sorts = list(self._sorts)
        other._fields = list(self._fields)
        other._distinct = self._distinct
        other._fetches = list(self._fetches)
        other._first_result = self._first_result
        other._max_results = self._max_results
        other._page = self._page
        other._result_mode = self._result_mode
        return other

    def __repr__(self) -> str:
        name = self._search_class.__name__ if self._search_class else None
        return (
            f"Search({name}, filters={self._filters!r}, sorts={self._sorts!r}, "
            f"fields={self._fields!r}, first_result={self._first_result}, "
            f"max_results={self._max_results}, page={self._page})"
        )
