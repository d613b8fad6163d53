"""
Search descriptors and the processor that runs them.
"""

from .example_options import ExampleOptions
from .field import Field
from .filter import Filter
from .metadata import MetadataUtil
from .processor import SearchProcessor
from .search import ISearch, Search
from .search_result import SearchResult
from .sort import Sort

__all__ = [
    "ExampleOptions",
    "Field",
    "Filter",
    "ISearch",
    "MetadataUtil",
    "Search",
    "SearchProcessor",
    "SearchResult",
    "Sort",
]
