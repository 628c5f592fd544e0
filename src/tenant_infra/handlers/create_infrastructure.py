"""Lambda entry point: create a tenant's table entry or start its stack."""

from typing import Any

from src.tenant_infra.handlers._runtime import run_step
from src.tenant_infra.services import InfrastructureLauncher


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return run_step(
        InfrastructureLauncher().create_infrastructure, event, context, "create-infrastructure"
    )
