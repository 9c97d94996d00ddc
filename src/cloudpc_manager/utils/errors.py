from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import httpx

from cloudpc_manager.graph.errors import GraphAPIError, GraphErrorCategory


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class ErrorDescriptor:
    headline: str
    detail: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    transient: bool = False
    suggestion: str | None = None
    help_url: str | None = None

    def as_message(self) -> str:
        """Render headline, detail and suggestion for a message box."""

        parts = [self.headline, self.detail]
        if self.suggestion:
            parts.append(self.suggestion)
        if self.help_url:
            parts.append(self.help_url)
        return "\n\n".join(part for part in parts if part)


def describe_exception(error: BaseException) -> ErrorDescriptor:
    descriptor = ErrorDescriptor(
        headline="Operation failed.",
        detail=f"{type(error).__name__}: {error}",
    )

    graph_error = _locate_graph_error(error)
    if graph_error is not None:
        descriptor.headline = _graph_headline(graph_error)
        descriptor.detail = _format_graph_detail(graph_error)
        descriptor.suggestion = graph_error.recovery_suggestion
        descriptor.help_url = graph_error.help_url
        descriptor.transient = graph_error.is_transient
        if graph_error.is_transient:
            descriptor.severity = ErrorSeverity.WARNING
        return descriptor

    if isinstance(error, httpx.TimeoutException):
        descriptor.headline = "Temporary timeout contacting Microsoft Graph."
        descriptor.severity = ErrorSeverity.WARNING
        descriptor.transient = True
        descriptor.suggestion = "Check your network connection and try again."
        return descriptor

    if isinstance(error, OSError):
        descriptor.headline = "A file or network operation failed."
        descriptor.suggestion = "Check the path and your permissions, then try again."
        return descriptor

    return descriptor


def _locate_graph_error(error: BaseException) -> GraphAPIError | None:
    current: BaseException | None = error
    visited: set[int] = set()
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        if isinstance(current, GraphAPIError):
            return current
        current = current.__cause__ or current.__context__
    return None


def _graph_headline(error: GraphAPIError) -> str:
    match error.category:
        case GraphErrorCategory.AUTHENTICATION:
            return "Could not connect to Microsoft Graph."
        case GraphErrorCategory.RATE_LIMIT:
            return "Microsoft Graph throttled the request."
        case GraphErrorCategory.NETWORK:
            return "Network issue contacting Microsoft Graph."
        case GraphErrorCategory.PERMISSION:
            return "The signed-in account lacks required Graph permissions."
        case GraphErrorCategory.NOT_FOUND:
            return "The Cloud PC was not found."
        case GraphErrorCategory.CONFLICT:
            return "The request conflicts with the Cloud PC's current state."
        case GraphErrorCategory.VALIDATION:
            return "Microsoft Graph rejected the request."
        case GraphErrorCategory.SERVER:
            return "The Windows 365 service failed to process the request."
        case _:
            return "Microsoft Graph request failed."


def _format_graph_detail(error: GraphAPIError) -> str:
    prefix = ""
    if error.status_code:
        prefix = f"HTTP {error.status_code} "
    if error.code:
        return f"{prefix}{error.code}: {error}"
    return f"{prefix}{error}".strip()


__all__ = [
    "ErrorDescriptor",
    "ErrorSeverity",
    "describe_exception",
]
