"""Temporal Client - For starting tenant infrastructure workflows."""

from typing import Any

from temporalio.client import Client

from src.tenant_infra.core.config import get_settings
from src.tenant_infra.core.exceptions import InvalidInputError
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.temporal.context import get_fairness_weight
from src.tenant_infra.temporal.routing import QueueKind, route_for_tenant
from src.tenant_infra.temporal.workflows import (
    TenantInfrastructureInput,
    TenantInfrastructureWorkflow,
)

logger = get_logger(__name__)

_client: Client | None = None


async def get_temporal_client() -> Client:
    """Get or create Temporal client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = await Client.connect(
            settings.temporal_host,
            namespace=settings.temporal_namespace,
        )
    return _client


async def close_temporal_client() -> None:
    """Close the Temporal client. Call during shutdown."""
    global _client
    if _client is not None:
        await _client.service_client.close()  # type: ignore[attr-defined]
        _client = None


def tenant_workflow_id(tenant_id: str) -> str:
    """Deterministic workflow ID: at most one running execution per tenant."""
    return f"tenant-infra-{tenant_id}"


async def start_tenant_infrastructure_workflow(
    event: dict[str, Any],
    client: Client | None = None,
) -> str:
    """
    Start the infrastructure workflow for a tenant.

    Starting while another execution for the same tenant is running raises
    ``WorkflowAlreadyStartedError``; registry writes assume no overlap.

    Args:
        event: Inbound payload (operation, tenantId, subscriptionTier, ...)
        client: Temporal client, defaults to the shared one

    Returns:
        workflow_id: The Temporal workflow ID for tracking

    Raises:
        InvalidInputError: If the payload has no tenantId
    """
    tenant_id = event.get("tenantId")
    if not tenant_id:
        raise InvalidInputError("Invalid input: tenantId is required")

    settings = get_settings()
    client = client or await get_temporal_client()

    route = route_for_tenant(
        tenant_id=tenant_id,
        namespace=settings.temporal_namespace,
        prefix=settings.temporal_queue_prefix,
        shards=settings.temporal_queue_shards,
        kind=QueueKind.TENANT,
        fairness_weight=get_fairness_weight(event.get("subscriptionTier")),
    )

    workflow_id = tenant_workflow_id(tenant_id)
    await client.start_workflow(
        TenantInfrastructureWorkflow.run,
        TenantInfrastructureInput(
            event=event,
            poll_interval_seconds=settings.poll_interval_seconds,
        ),
        id=workflow_id,
        task_queue=route.task_queue,
        priority=route.priority,
    )
    logger.info(
        "Started tenant infrastructure workflow",
        workflow_id=workflow_id,
        task_queue=route.task_queue,
        operation=event.get("operation", "CREATE"),
    )
    return workflow_id
