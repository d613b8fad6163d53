"""
Request DTOs

DTOs for incoming search parameters, validated at the boundary and turned
into Search descriptors.
"""

from .search_request import FilterRequest, SearchRequest, SortRequest

__all__ = ["FilterRequest", "SearchRequest", "SortRequest"]
