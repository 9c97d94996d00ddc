"""Tenant configuration UI."""

from .dialog import SettingsDialog

__all__ = ["SettingsDialog"]
