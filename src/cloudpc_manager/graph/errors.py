from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class GraphErrorCategory(str, Enum):
    PERMISSION = "permission"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    SERVER = "server"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class GraphAPIError(Exception):
    """Any failed Microsoft Graph call: HTTP error status or transport failure."""

    message: str
    category: GraphErrorCategory = GraphErrorCategory.UNKNOWN
    status_code: int | None = None
    code: str | None = None
    retry_after: str | None = None
    inner_error: Exception | None = None
    request_method: str | None = None
    request_url: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message

    @property
    def recovery_suggestion(self) -> str | None:
        if self.category is GraphErrorCategory.AUTHENTICATION:
            return "Sign out and sign back in with an account that has access."
        if self.category is GraphErrorCategory.PERMISSION:
            return (
                "Ask your administrator to grant CloudPC.ReadWrite.All "
                "to the app registration."
            )
        if self.category is GraphErrorCategory.RATE_LIMIT:
            if self.retry_after:
                return f"Microsoft Graph throttled the request. Try again in {self.retry_after} seconds."
            return "Microsoft Graph throttled the request. Try again shortly."
        if self.category is GraphErrorCategory.NETWORK:
            return "Check your internet connection and try again."
        if self.category is GraphErrorCategory.NOT_FOUND:
            return "The Cloud PC no longer exists. Refresh the list."
        if self.category is GraphErrorCategory.CONFLICT:
            return "The Cloud PC changed state. Refresh and verify the latest status."
        if self.category is GraphErrorCategory.VALIDATION:
            return "Microsoft Graph rejected the request. The Cloud PC may not be in grace period."
        if self.category is GraphErrorCategory.SERVER:
            return "The Windows 365 service reported an internal error. Try again later."
        return None

    @property
    def help_url(self) -> str | None:
        if self.category is GraphErrorCategory.RATE_LIMIT:
            return "https://learn.microsoft.com/graph/throttling"
        if self.category is GraphErrorCategory.PERMISSION:
            return "https://learn.microsoft.com/graph/permissions-reference"
        if self.category is GraphErrorCategory.AUTHENTICATION:
            return "https://learn.microsoft.com/azure/active-directory/develop/troubleshoot-common-errors"
        if self.category is GraphErrorCategory.UNKNOWN:
            return None
        return "https://learn.microsoft.com/graph/errors"

    @property
    def is_transient(self) -> bool:
        if self.category in {
            GraphErrorCategory.RATE_LIMIT,
            GraphErrorCategory.NETWORK,
            GraphErrorCategory.SERVER,
        }:
            return True
        return False


class RateLimitError(GraphAPIError):
    def __init__(
        self, message: str = "Rate limited", retry_after: str | None = None
    ) -> None:
        super().__init__(
            message=message,
            category=GraphErrorCategory.RATE_LIMIT,
            status_code=429,
            retry_after=retry_after,
        )


class AuthenticationError(GraphAPIError):
    """Sign-in or token acquisition failed; no Graph call was possible."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, category=GraphErrorCategory.AUTHENTICATION)


class PermissionError(GraphAPIError):
    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(
            message=message,
            category=GraphErrorCategory.PERMISSION,
            status_code=403,
        )


__all__ = [
    "GraphAPIError",
    "GraphErrorCategory",
    "RateLimitError",
    "AuthenticationError",
    "PermissionError",
]
