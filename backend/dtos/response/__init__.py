"""
Response DTOs

DTOs for outgoing search results.
"""

from .search_response import SearchResponse

__all__ = ["SearchResponse"]
