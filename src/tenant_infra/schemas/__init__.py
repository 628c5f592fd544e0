from src.tenant_infra.schemas.credentials import TemporaryCredentials
from src.tenant_infra.schemas.invocation import (
    InfrastructureDescriptor,
    InfrastructureRequest,
    InvocationMetadata,
    parse_request,
)
from src.tenant_infra.schemas.stack import (
    COMPLETE_STATUSES,
    FAILED_STATUSES,
    IN_PROGRESS_STATUSES,
    PollingDecision,
    StackEvent,
    StackPollResult,
    classify_stack_status,
)

__all__ = [
    "COMPLETE_STATUSES",
    "FAILED_STATUSES",
    "IN_PROGRESS_STATUSES",
    "InfrastructureDescriptor",
    "InfrastructureRequest",
    "InvocationMetadata",
    "PollingDecision",
    "StackEvent",
    "StackPollResult",
    "TemporaryCredentials",
    "classify_stack_status",
    "parse_request",
]
