"""Tenant infrastructure activities.

Each activity runs one workflow step. A step failure arrives as
InfrastructureStepError and leaves as ApplicationError whose ``type`` is the
error type and whose first detail is the failure envelope, so the workflow
branches on structured fields.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from temporalio import activity
from temporalio.exceptions import ApplicationError

from src.tenant_infra.core.exceptions import InfrastructureStepError
from src.tenant_infra.core.logging import (
    bind_invocation_context,
    clear_invocation_context,
    get_logger,
)
from src.tenant_infra.services import InfrastructureLauncher, ProvisioningOrchestrator
from src.tenant_infra.temporal.context import TenantCtx

logger = get_logger(__name__)


@dataclass
class InfrastructureStepInput:
    ctx: TenantCtx
    event: dict[str, Any]


def to_application_error(error: InfrastructureStepError) -> ApplicationError:
    """Translate a step failure into a Temporal failure with the envelope attached."""
    result = error.envelope.get("result", {})
    return ApplicationError(
        result.get("error") or str(error),
        error.envelope,
        type=error.error_type,
        non_retryable=not error.retryable,
    )


async def _run_step(
    step: Callable[[dict[str, Any], str | None], Awaitable[dict[str, Any]]],
    input: InfrastructureStepInput,
) -> dict[str, Any]:
    info = activity.info()
    bind_invocation_context(
        info.activity_id,
        function_name=info.activity_type,
        tenant_id=input.ctx.tenant_id,
    )
    try:
        return await step(input.event, info.workflow_id)
    except InfrastructureStepError as e:
        logger.warning(
            "Infrastructure step failed",
            error_type=e.error_type,
            retryable=e.retryable,
            attempt=info.attempt,
        )
        raise to_application_error(e) from e
    finally:
        clear_invocation_context()


@activity.defn
async def create_infrastructure_activity(input: InfrastructureStepInput) -> dict[str, Any]:
    """
    Create a tenant's table entry (public) or start its stack (private).

    Idempotency: Retry-safe. The public put overwrites the same item, and an
    existing private stack from a previous attempt is reused instead of
    failing on AlreadyExists.

    Args:
        input: InfrastructureStepInput with ctx and the inbound payload

    Returns:
        Envelope for the first poll (metadata.attempts = 0)

    Raises:
        ApplicationError: type is the error type, details[0] the envelope
    """
    return await _run_step(InfrastructureLauncher().create_infrastructure, input)


@activity.defn
async def delete_infrastructure_activity(input: InfrastructureStepInput) -> dict[str, Any]:
    """
    Delete a tenant's table entry (public) or start deleting its stack (private).

    Idempotency: Retry-safe. Deleting an absent item is a no-op and DeleteStack
    on a stack already being deleted is accepted by CloudFormation.
    """
    return await _run_step(InfrastructureLauncher().delete_infrastructure, input)


@activity.defn
async def poll_infrastructure_activity(input: InfrastructureStepInput) -> dict[str, Any]:
    """
    Poll a tenant's infrastructure once and reconcile the registry.

    Idempotency: A retry sees the same inbound attempt count, so it records the
    same attempt number. Completion timestamps are only written once.
    """
    return await _run_step(ProvisioningOrchestrator().poll_infrastructure, input)
