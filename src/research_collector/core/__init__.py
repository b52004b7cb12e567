"""
Core infrastructure shared by every layer: exception hierarchy and async helpers.
"""

from .exceptions import (
    APIError,
    ConfigurationError,
    DataError,
    InvalidParameterError,
    InvalidQueryError,
    ParseError,
    RateLimitError,
    ResearchCollectorError,
    StorageError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "ResearchCollectorError",
    "APIError",
    "UpstreamError",
    "RateLimitError",
    "ValidationError",
    "InvalidQueryError",
    "InvalidParameterError",
    "DataError",
    "ParseError",
    "StorageError",
    "ConfigurationError",
]
