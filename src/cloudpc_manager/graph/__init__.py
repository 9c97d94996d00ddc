"""Graph client utilities."""

from .client import (
    ApiVersionInput,
    GraphAPIVersion,
    GraphClientConfig,
    GraphClientFactory,
)
from .errors import (
    AuthenticationError,
    GraphAPIError,
    GraphErrorCategory,
    PermissionError,
    RateLimitError,
)

__all__ = [
    "GraphAPIError",
    "GraphErrorCategory",
    "RateLimitError",
    "AuthenticationError",
    "PermissionError",
    "GraphClientFactory",
    "GraphClientConfig",
    "GraphAPIVersion",
    "ApiVersionInput",
]
