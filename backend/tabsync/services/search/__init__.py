from .search_service import SearchService, TTLCache, get_search_service, normalize_items
from .search_exceptions import SearchException, SearchConfigurationError, SearchUpstreamError

__all__ = [
    "SearchService",
    "TTLCache",
    "get_search_service",
    "normalize_items",
    "SearchException",
    "SearchConfigurationError",
    "SearchUpstreamError"
]
