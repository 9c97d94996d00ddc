"""Shared utility helpers for Cloud PC Manager."""

from .logging import LoggingOptions, configure_logging, get_logger, log_file_path
from .errors import ErrorDescriptor, ErrorSeverity, describe_exception
from .formatters import (
    EMPTY_PLACEHOLDER,
    format_bool,
    format_grace_end,
    format_optional,
)

__all__ = [
    "LoggingOptions",
    "configure_logging",
    "get_logger",
    "log_file_path",
    "ErrorDescriptor",
    "ErrorSeverity",
    "describe_exception",
    "EMPTY_PLACEHOLDER",
    "format_bool",
    "format_grace_end",
    "format_optional",
]
