"""Temporal Workflows - Re-exports for worker registration."""

from src.tenant_infra.temporal.workflows.tenant_infrastructure import (
    TenantInfrastructureInput,
    TenantInfrastructureStatus,
    TenantInfrastructureWorkflow,
)

__all__ = [
    "TenantInfrastructureInput",
    "TenantInfrastructureStatus",
    "TenantInfrastructureWorkflow",
]
