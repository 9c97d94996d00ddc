from __future__ import annotations

from typing import cast

import httpx
import pytest
import respx

from cloudpc_manager.graph.client import GraphClientConfig, GraphClientFactory
from cloudpc_manager.graph.errors import (
    GraphAPIError,
    GraphErrorCategory,
    PermissionError as GraphPermissionError,
)
from cloudpc_manager.graph.requests import CLOUD_PCS_PATH
from cloudpc_manager.services import (
    CloudPCService,
    RefreshEvent,
    ServiceErrorEvent,
)

from tests.factories import cloud_pc_payload, make_access_token
from tests.stubs import FakeGraphClientFactory


CLOUD_PCS_URL = "https://graph.microsoft.com/beta/deviceManagement/virtualEndpoint/cloudPCs"


def _create_service() -> tuple[CloudPCService, GraphClientFactory]:
    config = GraphClientConfig(
        scopes=["https://graph.microsoft.com/CloudPC.ReadWrite.All"],
        enable_telemetry=False,
    )
    factory = GraphClientFactory(lambda _scopes: make_access_token(), config)
    return CloudPCService(factory), factory


@pytest.mark.asyncio
async def test_list_cloud_pcs_maps_payloads(respx_mock: respx.Router) -> None:
    service, factory = _create_service()
    route = respx_mock.get(CLOUD_PCS_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "value": [
                    cloud_pc_payload("1"),
                    cloud_pc_payload(
                        "2",
                        status="inGracePeriod",
                        grace_end="2024-06-01T10:00:00Z",
                    ),
                ]
            },
        )
    )
    refreshed: list[RefreshEvent] = []
    service.refreshed.subscribe(refreshed.append)
    try:
        result = await service.list_cloud_pcs()
    finally:
        await factory.close()

    assert route.called
    assert [pc.id for pc in result] == ["1", "2"]
    assert [pc.is_in_grace_period for pc in result] == [False, True]
    assert refreshed and len(refreshed[0].items) == 2


@pytest.mark.asyncio
async def test_list_cloud_pcs_collects_every_page() -> None:
    fake = FakeGraphClientFactory()
    fake.set_collection(
        CLOUD_PCS_PATH, [cloud_pc_payload(str(index)) for index in range(250)]
    )
    service = CloudPCService(cast(GraphClientFactory, fake))

    result = await service.list_cloud_pcs()

    assert len(result) == 250
    method, path, options = fake.recorded_requests[0]
    assert (method, path, options["api_version"]) == ("GET", CLOUD_PCS_PATH, "beta")


@pytest.mark.asyncio
async def test_list_cloud_pcs_propagates_graph_errors() -> None:
    fake = FakeGraphClientFactory()
    failure = GraphPermissionError("Insufficient privileges")
    fake.set_collection(CLOUD_PCS_PATH, [cloud_pc_payload("1"), failure])
    service = CloudPCService(cast(GraphClientFactory, fake))
    errors: list[ServiceErrorEvent] = []
    service.errors.subscribe(errors.append)

    with pytest.raises(GraphPermissionError):
        await service.list_cloud_pcs()

    assert errors and errors[0].error is failure


@pytest.mark.asyncio
async def test_list_cloud_pcs_rejects_unmappable_payload() -> None:
    fake = FakeGraphClientFactory()
    fake.set_collection(CLOUD_PCS_PATH, [{"managedDeviceName": "no-id"}])
    service = CloudPCService(cast(GraphClientFactory, fake))

    with pytest.raises(GraphAPIError) as excinfo:
        await service.list_cloud_pcs()

    assert excinfo.value.category is GraphErrorCategory.VALIDATION


@pytest.mark.asyncio
async def test_list_cloud_pcs_tolerates_malformed_grace_end() -> None:
    fake = FakeGraphClientFactory()
    fake.set_collection(
        CLOUD_PCS_PATH,
        [cloud_pc_payload("1", status="inGracePeriod", gracePeriodEndDateTime={})],
    )
    service = CloudPCService(cast(GraphClientFactory, fake))

    result = await service.list_cloud_pcs()

    assert [pc.grace_period_end_date_time for pc in result] == ["{}"]
    assert result[0].is_in_grace_period is True


@pytest.mark.asyncio
async def test_end_grace_period_posts_to_action(respx_mock: respx.Router) -> None:
    service, factory = _create_service()
    route = respx_mock.post(f"{CLOUD_PCS_URL}/pc-1/endGracePeriod").mock(
        return_value=httpx.Response(204)
    )
    errors: list[ServiceErrorEvent] = []
    service.errors.subscribe(errors.append)
    try:
        await service.end_grace_period("pc-1")
    finally:
        await factory.close()

    assert route.call_count == 1
    assert route.calls.last.request.content == b""
    assert errors == []


@pytest.mark.asyncio
async def test_end_grace_period_failure_is_raised_and_published(
    respx_mock: respx.Router,
) -> None:
    service, factory = _create_service()
    respx_mock.post(f"{CLOUD_PCS_URL}/pc-1/endGracePeriod").mock(
        return_value=httpx.Response(
            400,
            json={"error": {"code": "BadRequest", "message": "Not in grace period"}},
        )
    )
    errors: list[ServiceErrorEvent] = []
    service.errors.subscribe(errors.append)
    try:
        with pytest.raises(GraphAPIError) as excinfo:
            await service.end_grace_period("pc-1")
    finally:
        await factory.close()

    assert excinfo.value.code == "BadRequest"
    assert errors[0].operation == "endGracePeriod"
