"""
Custom exceptions for the search proxy
"""
from typing import Optional


class SearchException(Exception):
    """Base exception for the search service"""
    pass


class SearchConfigurationError(SearchException):
    """Raised when no API key is configured"""
    pass


class SearchUpstreamError(SearchException):
    """Raised when the search provider fails or is unreachable"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
