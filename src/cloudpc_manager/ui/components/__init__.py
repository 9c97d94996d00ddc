"""Reusable UI components for the Cloud PC Manager PySide6 application."""

from .dialogs import (
    ask_confirmation_async,
    save_file_dialog,
    show_error_dialog,
    show_exception_dialog,
    show_info_dialog,
)

__all__ = [
    "ask_confirmation_async",
    "save_file_dialog",
    "show_error_dialog",
    "show_exception_dialog",
    "show_info_dialog",
]
