from __future__ import annotations

import asyncio
from pathlib import Path
from typing import cast

import pytest

from cloudpc_manager.data import CloudPC
from cloudpc_manager.graph.errors import (
    AuthenticationError,
    GraphAPIError,
    GraphErrorCategory,
    PermissionError as GraphPermissionError,
)
from cloudpc_manager.services import CloudPCService
from cloudpc_manager.ui.cloud_pcs.controller import (
    CloudPCController,
    CloudPCViewState,
    ControllerErrorEvent,
    DeprovisionOutcome,
)

from tests.factories import make_cloud_pc
from tests.stubs import FakeCloudPCService


def _records() -> list[CloudPC]:
    return [
        make_cloud_pc("1", userPrincipalName="alice@contoso.com"),
        make_cloud_pc("2", status="inGracePeriod", userPrincipalName="bob@contoso.com"),
        make_cloud_pc("3", userPrincipalName="carol@fabrikam.com"),
    ]


class _Recorder:
    def __init__(self, controller: CloudPCController) -> None:
        self.states: list[CloudPCViewState] = []
        self.errors: list[ControllerErrorEvent] = []
        controller.changed.subscribe(self.states.append)
        controller.errors.subscribe(self.errors.append)


def _controller(
    service: FakeCloudPCService | None,
    *,
    answer: bool = True,
) -> tuple[CloudPCController, list[CloudPC]]:
    asked: list[CloudPC] = []

    def _confirm(cloud_pc: CloudPC) -> bool:
        asked.append(cloud_pc)
        return answer

    controller = CloudPCController(
        cast(CloudPCService, service) if service is not None else None,
        confirm=_confirm,
    )
    return controller, asked


@pytest.mark.asyncio
async def test_refresh_loads_records_and_clears_filter() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    recorder = _Recorder(controller)
    await controller.refresh()
    await controller.set_filter("alice")

    assert await controller.refresh() is True

    assert controller.filter_text == ""
    assert controller.filter_active is False
    assert [pc.id for pc in controller.visible()] == ["1", "2", "3"]
    assert controller.grace_count() == 1
    assert recorder.states[-1].total == 3
    assert recorder.states[-1].grace_count == 1


@pytest.mark.asyncio
async def test_refresh_failure_keeps_previous_records() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    recorder = _Recorder(controller)
    await controller.refresh()
    service.list_error = GraphAPIError(
        message="Service unavailable",
        category=GraphErrorCategory.SERVER,
        status_code=503,
    )

    assert await controller.refresh() is False

    assert [pc.id for pc in controller.store] == ["1", "2", "3"]
    assert recorder.errors[-1].operation == "refresh"
    assert recorder.errors[-1].error is service.list_error


@pytest.mark.asyncio
async def test_refresh_without_service_reports_connection_error() -> None:
    controller, _ = _controller(None)
    recorder = _Recorder(controller)

    assert await controller.refresh() is False

    assert controller.store.is_empty
    assert isinstance(recorder.errors[0].error, AuthenticationError)
    assert recorder.states, "view state should still be published"


@pytest.mark.asyncio
async def test_set_filter_filters_in_memory() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()

    visible = await controller.set_filter("contoso")

    assert [pc.id for pc in visible] == ["1", "2"]
    assert controller.filter_active is True
    assert service.list_calls == 1


@pytest.mark.asyncio
async def test_set_filter_with_no_matches_is_empty() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()

    assert await controller.set_filter("zzz") == []
    assert controller.filter_active is True


@pytest.mark.asyncio
async def test_clearing_filter_refreshes_from_graph() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()
    await controller.set_filter("alice")
    service.records.append(make_cloud_pc("4"))

    visible = await controller.set_filter("")

    assert service.list_calls == 2
    assert [pc.id for pc in visible] == ["1", "2", "3", "4"]
    assert controller.filter_active is False


@pytest.mark.asyncio
async def test_filter_on_empty_store_loads_then_applies() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)

    visible = await controller.set_filter("bob")

    assert service.list_calls == 1
    assert [pc.id for pc in visible] == ["2"]
    assert controller.filter_text == "bob"


@pytest.mark.asyncio
async def test_deprovision_in_grace_record_ends_grace_period_and_refreshes() -> None:
    service = FakeCloudPCService(_records())
    controller, asked = _controller(service)
    await controller.refresh()
    await controller.set_filter("bob")

    outcome = await controller.deprovision("2")

    assert outcome is DeprovisionOutcome.COMPLETED
    assert [pc.id for pc in asked] == ["2"]
    assert service.end_calls == ["2"]
    assert service.list_calls == 2
    assert controller.filter_active is False
    assert controller.grace_count() == 0
    assert controller.can_deprovision("2") is False


@pytest.mark.asyncio
async def test_deprovision_rejects_record_not_in_grace() -> None:
    service = FakeCloudPCService(_records())
    controller, asked = _controller(service)
    await controller.refresh()

    outcome = await controller.deprovision("1")

    assert outcome is DeprovisionOutcome.REJECTED
    assert asked == []
    assert service.end_calls == []


@pytest.mark.asyncio
async def test_deprovision_rejects_unknown_identifier() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()

    assert await controller.deprovision("missing") is DeprovisionOutcome.REJECTED
    assert service.end_calls == []


@pytest.mark.asyncio
async def test_declined_confirmation_makes_no_graph_call() -> None:
    service = FakeCloudPCService(_records())
    controller, asked = _controller(service, answer=False)
    await controller.refresh()

    outcome = await controller.deprovision("2")

    assert outcome is DeprovisionOutcome.DECLINED
    assert len(asked) == 1
    assert service.end_calls == []
    assert controller.can_deprovision("2") is True


@pytest.mark.asyncio
async def test_async_confirmation_is_awaited() -> None:
    service = FakeCloudPCService(_records())

    async def _confirm(_: CloudPC) -> bool:
        await asyncio.sleep(0)
        return True

    controller = CloudPCController(cast(CloudPCService, service), confirm=_confirm)
    await controller.refresh()

    assert await controller.deprovision("2") is DeprovisionOutcome.COMPLETED


@pytest.mark.asyncio
async def test_deprovision_failure_is_reported_and_state_kept() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    recorder = _Recorder(controller)
    await controller.refresh()
    service.end_error = GraphPermissionError("Insufficient privileges")

    outcome = await controller.deprovision("2")

    assert outcome is DeprovisionOutcome.FAILED
    assert service.list_calls == 1
    assert controller.can_deprovision("2") is True
    event = recorder.errors[-1]
    assert event.operation == "deprovision"
    assert event.cloud_pc_id == "2"
    assert event.error is service.end_error


@pytest.mark.asyncio
async def test_export_writes_full_unfiltered_collection(tmp_path: Path) -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()
    await controller.set_filter("alice")

    written = controller.export_csv(tmp_path / "out.csv")

    assert written == tmp_path / "out.csv"
    lines = written.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4


def test_export_failure_is_reported(tmp_path: Path) -> None:
    controller, _ = _controller(FakeCloudPCService())
    recorder = _Recorder(controller)
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    assert controller.export_csv(blocker / "out.csv") is None
    assert recorder.errors[0].operation == "export"


def test_can_deprovision_requires_selection() -> None:
    controller, _ = _controller(FakeCloudPCService())

    assert controller.can_deprovision(None) is False
    assert controller.can_deprovision("") is False


@pytest.mark.asyncio
async def test_clearing_service_drops_previous_session_records() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    recorder = _Recorder(controller)
    await controller.refresh()
    await controller.set_filter("bob")

    controller.set_service(None)

    assert controller.visible() == []
    assert controller.store.is_empty
    assert controller.filter_text == ""
    assert controller.can_deprovision("2") is False
    assert recorder.states[-1].total == 0


@pytest.mark.asyncio
async def test_new_service_with_failing_refresh_keeps_no_stale_records() -> None:
    controller, asked = _controller(FakeCloudPCService(_records()))
    await controller.refresh()
    other_tenant = FakeCloudPCService()
    other_tenant.list_error = GraphAPIError(
        message="Service unavailable",
        category=GraphErrorCategory.SERVER,
        status_code=503,
    )

    controller.set_service(cast(CloudPCService, other_tenant))
    assert await controller.refresh() is False

    assert await controller.deprovision("2") is DeprovisionOutcome.REJECTED
    assert asked == []
    assert other_tenant.end_calls == []


@pytest.mark.asyncio
async def test_setting_same_service_keeps_records() -> None:
    service = FakeCloudPCService(_records())
    controller, _ = _controller(service)
    await controller.refresh()

    controller.set_service(cast(CloudPCService, service))

    assert len(controller.store) == 3
