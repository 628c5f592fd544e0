from src.tenant_infra.models.enums import (
    PROVISIONING_TRANSITIONS,
    EnvelopeStatus,
    InfrastructureOperation,
    PollingOutcome,
    ProvisioningState,
    StackStatusClass,
    SubscriptionTier,
    can_transition,
)
from src.tenant_infra.models.tenant import (
    METADATA_SORT_KEY,
    TenantRecord,
    tenant_key,
    utc_now_iso,
)

__all__ = [
    "EnvelopeStatus",
    "InfrastructureOperation",
    "METADATA_SORT_KEY",
    "PROVISIONING_TRANSITIONS",
    "PollingOutcome",
    "ProvisioningState",
    "StackStatusClass",
    "SubscriptionTier",
    "TenantRecord",
    "can_transition",
    "tenant_key",
    "utc_now_iso",
]
