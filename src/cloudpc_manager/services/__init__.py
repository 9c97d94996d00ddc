"""Business logic service layer for Cloud PC Manager."""

from .base import EventHook, RefreshEvent, ServiceErrorEvent
from .cloud_pcs import CloudPCService
from .export import CLOUD_PC_COLUMNS, ExportService
from .registry import ServiceRegistry

__all__ = [
    "CLOUD_PC_COLUMNS",
    "CloudPCService",
    "EventHook",
    "ExportService",
    "RefreshEvent",
    "ServiceErrorEvent",
    "ServiceRegistry",
]
