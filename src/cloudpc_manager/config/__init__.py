"""Configuration helpers for the Cloud PC Manager application."""

from .settings import DEFAULT_GRAPH_HOST, DEFAULT_GRAPH_SCOPES, Settings, SettingsManager

__all__ = [
    "DEFAULT_GRAPH_HOST",
    "DEFAULT_GRAPH_SCOPES",
    "Settings",
    "SettingsManager",
]
