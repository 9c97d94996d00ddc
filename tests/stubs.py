from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any

from cloudpc_manager.data import CloudPC


class StubPublicClientApplication:
    """Lightweight stand-in for msal.PublicClientApplication."""

    def __init__(
        self,
        client_id: str,
        authority: str,
        token_cache=None,
        *,
        accounts: Iterable[dict[str, Any]] | None = None,
        silent_results: Iterable[dict[str, Any] | None] | None = None,
        interactive_results: Iterable[dict[str, Any] | Exception] | None = None,
    ) -> None:
        self.client_id = client_id
        self.authority = authority
        self.token_cache = token_cache
        self._accounts = list(accounts or [])
        self._silent_results = list(silent_results or [])
        self._interactive_results = list(interactive_results or [])
        self.acquire_token_silent_calls: list[
            tuple[tuple[str, ...], dict[str, Any] | None]
        ] = []
        self.acquire_token_interactive_calls: list[
            tuple[tuple[str, ...], dict[str, Any] | None]
        ] = []
        self.remove_account_calls: list[dict[str, Any]] = []

    def get_accounts(self) -> list[dict[str, Any]]:
        return list(self._accounts)

    def acquire_token_silent(
        self,
        scopes: Iterable[str],
        *,
        account: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        self.acquire_token_silent_calls.append((tuple(scopes), account))
        if self._silent_results:
            return self._silent_results.pop(0)
        return None

    def acquire_token_interactive(
        self,
        scopes: Iterable[str],
        prompt: str | None = None,
    ) -> dict[str, Any]:
        self.acquire_token_interactive_calls.append((tuple(scopes), {"prompt": prompt}))
        if not self._interactive_results:
            raise RuntimeError("No interactive result configured")
        result = self._interactive_results.pop(0)
        if isinstance(result, Exception):
            raise result
        claims = result.get("id_token_claims", {})
        account = {
            "name": claims.get("name"),
            "username": claims.get("preferred_username"),
            "home_account_id": claims.get("oid"),
            "realm": claims.get("tid"),
        }
        if account["username"]:
            self._accounts.append(account)
        if "access_token" in result:
            self._silent_results.append(result)
        return result

    def remove_account(self, account: dict[str, Any]) -> None:
        self.remove_account_calls.append(account)
        try:
            self._accounts.remove(account)
        except ValueError:
            pass


@dataclass(slots=True)
class FakeResponse:
    status_code: int = 204
    content: bytes = b""


class FakeGraphClientFactory:
    """Deterministic Graph client facade for service tests."""

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any] | Exception]] = {}
        self.recorded_requests: list[tuple[str, str, dict[str, Any]]] = []
        self.request_errors: dict[tuple[str, str], Exception] = {}

    def set_collection(
        self, path: str, items: Iterable[dict[str, Any] | Exception]
    ) -> None:
        self.collections[path] = list(items)

    def set_request_error(self, method: str, path: str, error: Exception) -> None:
        self.request_errors[(method, path)] = error

    async def iter_collection(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        page_size: int | None = None,
        api_version=None,
    ) -> AsyncIterator[dict[str, Any]]:
        self.recorded_requests.append(
            (method, path, {"params": params, "api_version": api_version})
        )
        for item in self.collections.get(path, []):
            await asyncio.sleep(0)
            if isinstance(item, Exception):
                raise item
            yield item

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
        api_version=None,
    ) -> FakeResponse:
        self.recorded_requests.append(
            (
                method,
                path,
                {
                    "params": params,
                    "json": json_body,
                    "headers": headers,
                    "api_version": api_version,
                },
            )
        )
        configured = self.request_errors.get((method, path))
        if configured is not None:
            raise configured
        return FakeResponse()


class FakeCloudPCService:
    """In-memory Cloud PC service recording calls made by the controller."""

    def __init__(self, records: Iterable[CloudPC] | None = None) -> None:
        self.records: list[CloudPC] = list(records or [])
        self.list_error: Exception | None = None
        self.end_error: Exception | None = None
        self.list_calls = 0
        self.end_calls: list[str] = []

    async def list_cloud_pcs(self) -> list[CloudPC]:
        self.list_calls += 1
        await asyncio.sleep(0)
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    async def end_grace_period(self, cloud_pc_id: str) -> None:
        self.end_calls.append(cloud_pc_id)
        await asyncio.sleep(0)
        if self.end_error is not None:
            raise self.end_error
        self.records = [
            record.model_copy(update={"status": "deprovisioning"})
            if record.id == cloud_pc_id
            else record
            for record in self.records
        ]
