from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Awaitable, Callable

from cloudpc_manager.data import CloudPC, CloudPCStore
from cloudpc_manager.graph.errors import AuthenticationError
from cloudpc_manager.services import CloudPCService, EventHook, ExportService
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)

ConfirmCallback = Callable[[CloudPC], bool | Awaitable[bool]]


class DeprovisionOutcome(StrEnum):
    COMPLETED = "completed"
    DECLINED = "declined"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(slots=True)
class CloudPCViewState:
    """Snapshot published to the UI after every state change."""

    visible: list[CloudPC]
    total: int
    grace_count: int
    filter_text: str

    @property
    def filter_active(self) -> bool:
        return bool(self.filter_text)


@dataclass(slots=True)
class ControllerErrorEvent:
    operation: str
    error: Exception
    cloud_pc_id: str | None = None


class CloudPCController:
    """Refresh, filter, deprovision and export workflows over the Cloud PC store.

    The controller never raises Graph or authentication failures to its
    caller: they are published on ``errors`` and prior state is kept.
    """

    def __init__(
        self,
        service: CloudPCService | None,
        *,
        confirm: ConfirmCallback,
        store: CloudPCStore | None = None,
        exporter: ExportService | None = None,
    ) -> None:
        self._service = service
        self._confirm = confirm
        self._store = store or CloudPCStore()
        self._exporter = exporter or ExportService()
        self._filter_text = ""

        self.changed: EventHook[CloudPCViewState] = EventHook()
        self.errors: EventHook[ControllerErrorEvent] = EventHook()

    # ----------------------------------------------------------------- Queries

    @property
    def store(self) -> CloudPCStore:
        return self._store

    @property
    def filter_text(self) -> str:
        return self._filter_text

    @property
    def filter_active(self) -> bool:
        return bool(self._filter_text)

    @property
    def has_service(self) -> bool:
        return self._service is not None

    def visible(self) -> list[CloudPC]:
        return self._store.filtered(self._filter_text)

    def grace_count(self) -> int:
        return self._store.grace_count()

    def can_deprovision(self, cloud_pc_id: str | None) -> bool:
        if not cloud_pc_id:
            return False
        record = self._store.get(cloud_pc_id)
        return record is not None and record.is_in_grace_period

    def state(self) -> CloudPCViewState:
        return CloudPCViewState(
            visible=self.visible(),
            total=len(self._store),
            grace_count=self._store.grace_count(),
            filter_text=self._filter_text,
        )

    # --------------------------------------------------------------- Lifecycle

    def set_service(self, service: CloudPCService | None) -> None:
        """Swap the Graph service, e.g. after signing in to another tenant.

        Records fetched through a previous service are discarded so they
        cannot be exported or deprovisioned against the new session.
        """

        if service is self._service:
            return
        self._service = service
        self.reset()

    def reset(self) -> None:
        """Drop every held record and the active filter."""

        self._store.replace([])
        self._filter_text = ""
        self._publish()

    # ----------------------------------------------------------------- Actions

    async def refresh(self) -> bool:
        """Clear the filter and reload every Cloud PC from Graph."""

        self._filter_text = ""
        return await self._reload()

    async def set_filter(self, text: str | None) -> list[CloudPC]:
        """Apply ``text`` as the active filter.

        An empty filter, or an empty store, triggers a full refresh first;
        otherwise filtering happens in memory without a network call.
        """

        query = text or ""
        if not query:
            await self.refresh()
            return self.visible()
        if self._store.is_empty:
            self._filter_text = query
            await self._reload()
            return self.visible()
        self._filter_text = query
        self._publish()
        return self.visible()

    async def deprovision(self, cloud_pc_id: str) -> DeprovisionOutcome:
        """End the grace period for an in-grace Cloud PC after confirmation."""

        record = self._store.get(cloud_pc_id)
        if record is None or not record.is_in_grace_period:
            logger.warning(
                "Rejected deprovision request",
                cloud_pc_id=cloud_pc_id,
                status=record.status if record else None,
            )
            return DeprovisionOutcome.REJECTED

        if not await self._ask_confirmation(record):
            logger.info("Deprovision cancelled by operator", cloud_pc_id=cloud_pc_id)
            return DeprovisionOutcome.DECLINED

        service = self._service
        if service is None:
            self._report("deprovision", self._not_connected(), cloud_pc_id)
            return DeprovisionOutcome.FAILED
        try:
            await service.end_grace_period(cloud_pc_id)
        except Exception as exc:  # noqa: BLE001 - reported to the operator
            self._report("deprovision", exc, cloud_pc_id)
            return DeprovisionOutcome.FAILED

        await self.refresh()
        return DeprovisionOutcome.COMPLETED

    def export_csv(self, path: Path) -> Path | None:
        """Write the full, unfiltered collection to ``path``."""

        try:
            return self._exporter.export_cloud_pcs_csv(path, self._store.all())
        except OSError as exc:
            self._report("export", exc)
            return None

    # ----------------------------------------------------------------- Helpers

    async def _reload(self) -> bool:
        service = self._service
        if service is None:
            self._report("refresh", self._not_connected())
            self._publish()
            return False
        try:
            records = await service.list_cloud_pcs()
        except Exception as exc:  # noqa: BLE001 - reported to the operator
            self._report("refresh", exc)
            self._publish()
            return False
        self._store.replace(records)
        self._publish()
        return True

    async def _ask_confirmation(self, record: CloudPC) -> bool:
        answer = self._confirm(record)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    def _publish(self) -> None:
        self.changed.emit(self.state())

    def _report(
        self, operation: str, error: Exception, cloud_pc_id: str | None = None
    ) -> None:
        logger.error(
            "Cloud PC operation failed",
            operation=operation,
            cloud_pc_id=cloud_pc_id,
            error=str(error),
        )
        self.errors.emit(
            ControllerErrorEvent(operation=operation, error=error, cloud_pc_id=cloud_pc_id)
        )

    @staticmethod
    def _not_connected() -> AuthenticationError:
        return AuthenticationError("Sign in to Microsoft Graph before loading Cloud PCs")


__all__ = [
    "CloudPCController",
    "CloudPCViewState",
    "ConfirmCallback",
    "ControllerErrorEvent",
    "DeprovisionOutcome",
]
