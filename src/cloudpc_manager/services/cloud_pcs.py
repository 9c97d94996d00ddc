from __future__ import annotations

from pydantic import ValidationError

from cloudpc_manager.data import CloudPC
from cloudpc_manager.graph.client import GraphClientFactory
from cloudpc_manager.graph.errors import GraphAPIError, GraphErrorCategory
from cloudpc_manager.graph.requests import cloud_pcs_request, end_grace_period_request
from cloudpc_manager.services.base import EventHook, RefreshEvent, ServiceErrorEvent
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)


class CloudPCService:
    """Graph operations for Windows 365 Cloud PCs: list and end grace period."""

    def __init__(self, client_factory: GraphClientFactory) -> None:
        self._client_factory = client_factory

        self.refreshed: EventHook[RefreshEvent[list[CloudPC]]] = EventHook()
        self.errors: EventHook[ServiceErrorEvent] = EventHook()

    async def list_cloud_pcs(self) -> list[CloudPC]:
        """Fetch every Cloud PC in the tenant.

        The call either returns the complete collection or raises
        ``GraphAPIError``; a payload that cannot be mapped fails the call.
        """

        request = cloud_pcs_request()
        items: list[CloudPC] = []
        try:
            async for payload in self._client_factory.iter_collection(
                request.method,
                request.url,
                params=request.params,
                api_version=request.api_version,
            ):
                items.append(self._parse(payload))
        except GraphAPIError as exc:
            logger.error(
                "Failed to list Cloud PCs",
                status_code=exc.status_code,
                category=exc.category.value,
                error=str(exc),
            )
            self.errors.emit(ServiceErrorEvent(operation="list", error=exc))
            raise

        logger.info(
            "Listed Cloud PCs",
            count=len(items),
            in_grace=sum(1 for item in items if item.is_in_grace_period),
        )
        self.refreshed.emit(RefreshEvent(items=items))
        return items

    async def end_grace_period(self, cloud_pc_id: str) -> None:
        """End the grace period for ``cloud_pc_id``, deprovisioning it immediately."""

        request = end_grace_period_request(cloud_pc_id)
        try:
            await self._client_factory.request(
                request.method,
                request.url,
                json_body=request.body,
                headers=request.headers,
                api_version=request.api_version,
            )
        except GraphAPIError as exc:
            logger.error(
                "End grace period failed",
                cloud_pc_id=cloud_pc_id,
                status_code=exc.status_code,
                error=str(exc),
            )
            self.errors.emit(ServiceErrorEvent(operation="endGracePeriod", error=exc))
            raise

        logger.info("Ended grace period", cloud_pc_id=cloud_pc_id)

    @staticmethod
    def _parse(payload: dict[str, object]) -> CloudPC:
        try:
            return CloudPC.from_graph(payload)
        except ValidationError as exc:
            raise GraphAPIError(
                message=f"Unexpected Cloud PC payload from Microsoft Graph: {exc}",
                category=GraphErrorCategory.VALIDATION,
                inner_error=exc,
            ) from exc


__all__ = ["CloudPCService"]
