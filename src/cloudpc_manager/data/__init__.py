"""Data layer: Graph models and the in-memory Cloud PC store."""

from .models import CloudPC, CloudPCStatus, GraphResource
from .store import CloudPCStore, matches_query

__all__ = [
    "CloudPC",
    "CloudPCStatus",
    "CloudPCStore",
    "GraphResource",
    "matches_query",
]
