from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncGenerator, Callable, Sequence, TypeAlias

import httpx

from cloudpc_manager.auth.types import TokenProvider
from cloudpc_manager.config.settings import DEFAULT_GRAPH_HOST
from cloudpc_manager.graph.errors import (
    AuthenticationError,
    GraphAPIError,
    GraphErrorCategory,
    PermissionError,
    RateLimitError,
)
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)


class GraphAPIVersion(str, Enum):
    """Supported Microsoft Graph API versions."""

    V1 = "v1.0"
    BETA = "beta"


ApiVersionInput: TypeAlias = GraphAPIVersion | str | None


@dataclass(slots=True)
class GraphTelemetryEvent:
    method: str
    url: str
    status_code: int | None
    duration_ms: float
    category: GraphErrorCategory | None
    success: bool


def _coerce_api_version(value: GraphAPIVersion | str) -> str:
    """Normalise API version inputs to canonical string values."""

    if isinstance(value, GraphAPIVersion):
        return value.value
    normalised = value.strip()
    lowered = normalised.lower()
    if lowered in {"v1", "v1.0", "1.0", "ga"}:
        return GraphAPIVersion.V1.value
    if lowered == "beta":
        return GraphAPIVersion.BETA.value
    return normalised


def _prepare_relative_path(path: str, host: str) -> tuple[str, str | None]:
    """Return a leading-slash path without host/version plus any embedded version."""

    trimmed = path.strip()
    if trimmed.startswith(host):
        trimmed = trimmed[len(host) :]
    if not trimmed.startswith("/"):
        trimmed = "/" + trimmed

    version: str | None = None
    for prefix, mapped in (
        ("/beta", GraphAPIVersion.BETA.value),
        ("/v1.0", GraphAPIVersion.V1.value),
    ):
        if trimmed == prefix:
            version = mapped
            trimmed = "/"
            break
        if trimmed.startswith(f"{prefix}/"):
            version = mapped
            trimmed = trimmed[len(prefix) :]
            break

    if trimmed != "/" and trimmed.endswith("/"):
        trimmed = trimmed.rstrip("/")
    return trimmed or "/", version


_STATUS_CATEGORIES: dict[int, GraphErrorCategory] = {
    400: GraphErrorCategory.VALIDATION,
    404: GraphErrorCategory.NOT_FOUND,
    409: GraphErrorCategory.CONFLICT,
}


class GraphAsyncClient(httpx.AsyncClient):
    """httpx client that turns every failed exchange into ``GraphAPIError``.

    Nothing is retried: throttling, server and transport failures surface
    to the caller on the first attempt.
    """

    def __init__(
        self,
        *args: Any,
        telemetry_callback: Callable[[GraphTelemetryEvent], None] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._telemetry_callback = telemetry_callback

    async def send(  # type: ignore[override]
        self,
        request: httpx.Request,
        **kwargs: Any,
    ) -> httpx.Response:
        start = time.perf_counter()
        status_code: int | None = None
        failure: GraphAPIError | None = None
        success = False
        try:
            response = await super().send(request, **kwargs)
            status_code = response.status_code
            if response.is_error:
                await response.aread()
                failure = error_from_response(response)
                raise failure
            success = True
            return response
        except httpx.TransportError as exc:
            failure = _transport_error(exc)
            raise failure from exc
        finally:
            self._publish_telemetry(
                GraphTelemetryEvent(
                    method=request.method,
                    url=str(request.url),
                    status_code=status_code,
                    duration_ms=(time.perf_counter() - start) * 1000,
                    category=failure.category if failure else None,
                    success=success,
                )
            )

    def _publish_telemetry(self, event: GraphTelemetryEvent) -> None:
        if self._telemetry_callback is None:
            return
        try:
            self._telemetry_callback(event)
        except Exception:  # pragma: no cover - telemetry shouldn't break requests
            logger.warning("Telemetry callback raised an exception", exc_info=True)


def _transport_error(exc: httpx.TransportError) -> GraphAPIError:
    if isinstance(exc, httpx.TimeoutException):
        message = "Network timeout communicating with Microsoft Graph"
    else:
        message = f"Network error communicating with Microsoft Graph: {exc}"
    return GraphAPIError(
        message=message,
        category=GraphErrorCategory.NETWORK,
        inner_error=exc,
    )


def _graph_error_body(response: httpx.Response) -> tuple[str | None, str | None]:
    """Extract ``error.code`` and ``error.message`` from a Graph error body."""

    try:
        body = response.json() if response.content else None
    except ValueError:
        return None, None
    error_info = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error_info, dict):
        return None, None
    code = error_info.get("code")
    message = error_info.get("message")
    return (
        code if isinstance(code, str) else None,
        message if isinstance(message, str) else None,
    )


def error_from_response(response: httpx.Response) -> GraphAPIError:
    """Classify a Graph HTTP error response."""

    status = response.status_code
    code, body_message = _graph_error_body(response)
    message = (
        body_message or response.text or f"Graph request failed with status {status}"
    )
    retry_after = response.headers.get("Retry-After")

    error: GraphAPIError
    if status == 401:
        error = AuthenticationError(message)
        error.status_code = status
    elif status == 403:
        error = PermissionError(message)
    elif status == 429:
        error = RateLimitError(message, retry_after=retry_after)
    else:
        if status >= 500:
            category = GraphErrorCategory.SERVER
        else:
            category = _STATUS_CATEGORIES.get(status, GraphErrorCategory.UNKNOWN)
        error = GraphAPIError(
            message=message,
            category=category,
            status_code=status,
            retry_after=retry_after,
        )
    error.code = code
    return error


@dataclass(slots=True)
class GraphClientConfig:
    scopes: Sequence[str]
    graph_host: str = DEFAULT_GRAPH_HOST
    user_agent: str = "CloudPCManager-Python"
    api_version: GraphAPIVersion | str = GraphAPIVersion.V1
    page_size: int | None = None
    enable_telemetry: bool = True
    telemetry_callback: Callable[[GraphTelemetryEvent], None] | None = None


class GraphClientFactory:
    """Owns the shared httpx client and resolves Graph URLs for callers."""

    def __init__(
        self, token_provider: TokenProvider, config: GraphClientConfig
    ) -> None:
        self._token_provider = token_provider
        self._config = config
        self._host = config.graph_host.rstrip("/")
        self._telemetry_callback = (
            config.telemetry_callback if config.enable_telemetry else None
        )
        self._default_api_version = _coerce_api_version(config.api_version)
        self._http_client: GraphAsyncClient | None = None

    @property
    def default_api_version(self) -> str:
        return self._default_api_version

    @property
    def graph_host(self) -> str:
        return self._host

    def absolute_url(self, path: str, api_version: ApiVersionInput = None) -> str:
        """Build the full request URL for ``path`` against the configured host."""

        if path.startswith("http://") or path.startswith("https://"):
            if not path.startswith(self._host):
                return path
        relative, embedded = _prepare_relative_path(path, self._host)
        explicit = api_version or embedded
        version = (
            _coerce_api_version(explicit)
            if explicit is not None
            else self._default_api_version
        )
        return f"{self._host}/{version}{relative}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
        api_version: ApiVersionInput = None,
    ) -> httpx.Response:
        client = self._get_http_client()
        url = self.absolute_url(path, api_version=api_version)
        try:
            return await client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
            )
        except GraphAPIError as exc:
            exc.request_method = method.upper()
            exc.request_url = url
            raise

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
        api_version: ApiVersionInput = None,
    ) -> dict[str, Any]:
        response = await self.request(
            method,
            path,
            params=params,
            json_body=json_body,
            headers=headers,
            api_version=api_version,
        )
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise GraphAPIError(
                message="Microsoft Graph returned a response that is not valid JSON",
                category=GraphErrorCategory.UNKNOWN,
                status_code=response.status_code,
                inner_error=exc,
                request_method=method.upper(),
                request_url=str(response.request.url),
            ) from exc
        if not isinstance(payload, dict):
            return {"value": payload}
        return payload

    async def iter_collection(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        page_size: int | None = None,
        api_version: ApiVersionInput = None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield every item of a Graph collection, following ``@odata.nextLink``."""

        next_url: str | None = self.absolute_url(path, api_version=api_version)
        query: dict[str, Any] | None = dict(params) if params else None
        size = page_size if page_size is not None else self._config.page_size
        if size:
            query = {**(query or {}), "$top": size}

        while next_url:
            payload = await self.request_json(
                method,
                next_url,
                params=query,
                headers=headers,
            )
            value = payload.get("value")
            if not isinstance(value, list):
                raise GraphAPIError(
                    message="Microsoft Graph collection response is missing 'value'",
                    category=GraphErrorCategory.UNKNOWN,
                    request_method=method.upper(),
                    request_url=next_url,
                )
            for item in value:
                if isinstance(item, dict):
                    yield item
            next_link = payload.get("@odata.nextLink")
            next_url = next_link if isinstance(next_link, str) and next_link else None
            query = None

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------- Internals

    def _get_http_client(self) -> GraphAsyncClient:
        if self._http_client is None:
            callback = self._telemetry_callback
            if callback is None and self._config.enable_telemetry:
                callback = self._default_telemetry_callback

            def bearer_auth(request: httpx.Request) -> httpx.Request:
                token = self._token_provider(self._config.scopes)
                request.headers["Authorization"] = f"Bearer {token.token}"
                return request

            self._http_client = GraphAsyncClient(
                headers={"User-Agent": self._config.user_agent},
                auth=bearer_auth,
                telemetry_callback=callback,
                timeout=httpx.Timeout(
                    connect=10.0,
                    read=60.0,
                    write=30.0,
                    pool=5.0,
                ),
            )
        return self._http_client

    def _default_telemetry_callback(self, event: GraphTelemetryEvent) -> None:
        logger.debug(
            "Graph request",
            method=event.method,
            url=event.url,
            status_code=event.status_code,
            duration_ms=round(event.duration_ms, 2),
            success=event.success,
            category=event.category.value if event.category else None,
        )


__all__ = [
    "GraphClientFactory",
    "GraphClientConfig",
    "GraphAsyncClient",
    "TokenProvider",
    "GraphTelemetryEvent",
    "GraphAPIVersion",
    "ApiVersionInput",
    "error_from_response",
]
