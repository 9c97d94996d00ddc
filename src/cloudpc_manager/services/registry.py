from __future__ import annotations

from dataclasses import dataclass, field

from cloudpc_manager.graph.client import GraphClientFactory

from .cloud_pcs import CloudPCService
from .export import ExportService


@dataclass(slots=True)
class ServiceRegistry:
    """Container for the services shared by the UI shell."""

    cloud_pcs: CloudPCService | None = None
    export: ExportService = field(default_factory=ExportService)
    graph: GraphClientFactory | None = None

    async def close(self) -> None:
        if self.graph is not None:
            await self.graph.close()
            self.graph = None


__all__ = ["ServiceRegistry"]
