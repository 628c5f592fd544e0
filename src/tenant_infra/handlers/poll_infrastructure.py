"""Lambda entry point: poll a tenant's infrastructure once."""

from typing import Any

from src.tenant_infra.handlers._runtime import run_step
from src.tenant_infra.services import ProvisioningOrchestrator


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return run_step(
        ProvisioningOrchestrator().poll_infrastructure, event, context, "poll-infrastructure"
    )
