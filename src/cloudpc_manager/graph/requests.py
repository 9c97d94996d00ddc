from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote


GraphMethod = Literal["GET", "POST", "PATCH", "DELETE", "PUT"]
BETA_VERSION = "beta"

CLOUD_PCS_PATH = "/deviceManagement/virtualEndpoint/cloudPCs"


@dataclass(slots=True)
class GraphRequest:
    """Structured representation of a Microsoft Graph request."""

    method: GraphMethod
    url: str
    headers: dict[str, str] | None = None
    body: Any | None = None
    params: dict[str, Any] | None = None
    api_version: str | None = None


def cloud_pcs_request(*, params: dict[str, Any] | None = None) -> GraphRequest:
    """List Cloud PCs in the tenant (beta-only endpoint)."""

    return GraphRequest(
        method="GET",
        url=CLOUD_PCS_PATH,
        params=params,
        api_version=BETA_VERSION,
    )


def end_grace_period_request(cloud_pc_id: str) -> GraphRequest:
    """Construct the POST that ends the grace period and deprovisions a Cloud PC."""

    if not cloud_pc_id:
        raise ValueError("Cloud PC id is required")
    path = f"{CLOUD_PCS_PATH}/{quote(cloud_pc_id, safe='')}/endGracePeriod"
    return GraphRequest(method="POST", url=path, api_version=BETA_VERSION)


__all__ = [
    "BETA_VERSION",
    "CLOUD_PCS_PATH",
    "GraphMethod",
    "GraphRequest",
    "cloud_pcs_request",
    "end_grace_period_request",
]
