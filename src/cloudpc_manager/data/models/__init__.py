"""Domain models representing Microsoft Graph Cloud PC resources."""

from .cloud_pc import CloudPC, CloudPCStatus
from .common import GraphResource

__all__ = [
    "GraphResource",
    "CloudPC",
    "CloudPCStatus",
]
