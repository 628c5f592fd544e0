"""
Temporal Activities - one activity per infrastructure workflow step.

Activities should be:
1. Idempotent - Safe to retry
2. Fine-grained - Do one thing well
3. Side-effect aware - AWS calls go here, not in workflows
"""

from src.tenant_infra.temporal.activities.infrastructure import (
    InfrastructureStepInput,
    create_infrastructure_activity,
    delete_infrastructure_activity,
    poll_infrastructure_activity,
    to_application_error,
)
from src.tenant_infra.temporal.context import TenantCtx

__all__ = [
    # Context
    "TenantCtx",
    # Dataclasses
    "InfrastructureStepInput",
    # Activities
    "create_infrastructure_activity",
    "delete_infrastructure_activity",
    "poll_infrastructure_activity",
    "to_application_error",
]
