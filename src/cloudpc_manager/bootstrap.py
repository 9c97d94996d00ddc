from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cloudpc_manager.auth import AuthManager

from cloudpc_manager.config import Settings
from cloudpc_manager.graph.client import GraphClientConfig, GraphClientFactory
from cloudpc_manager.services import CloudPCService, ServiceRegistry
from cloudpc_manager.utils import get_logger


logger = get_logger(__name__)


def build_services() -> ServiceRegistry:
    """Services available before sign-in: export only, no Graph access."""

    return ServiceRegistry()


def initialize_domain_services(
    auth_manager: "AuthManager",
    settings: Settings,
) -> ServiceRegistry:
    """Create the Graph client and Cloud PC service for a signed-in operator.

    Args:
        auth_manager: Configured auth manager holding the signed-in account
        settings: Tenant configuration, including scopes and Graph host

    Returns:
        ServiceRegistry with ``cloud_pcs`` and ``graph`` populated
    """

    token_provider = auth_manager.token_provider()
    graph_config = GraphClientConfig(
        scopes=list(settings.configured_scopes()),
        graph_host=settings.graph_host,
    )
    client_factory = GraphClientFactory(token_provider, graph_config)
    cloud_pcs = CloudPCService(client_factory)

    logger.info(
        "Domain services initialized",
        tenant_id=settings.tenant_id,
        graph_host=settings.graph_host,
    )
    return ServiceRegistry(cloud_pcs=cloud_pcs, graph=client_factory)


__all__ = ["build_services", "initialize_domain_services"]
