"""Shared enums for the tenant registry and the provisioning workflow."""

from enum import Enum
from types import MappingProxyType


class SubscriptionTier(str, Enum):
    """Tenant subscription tier: shared or dedicated infrastructure."""

    PUBLIC = "public"  # Shared table, no per-tenant stack
    PRIVATE = "private"  # Dedicated CloudFormation stack


class InfrastructureOperation(str, Enum):
    """Direction of an infrastructure workflow."""

    CREATE = "CREATE"
    DELETE = "DELETE"


class ProvisioningState(str, Enum):
    """Tenant registry lifecycle state."""

    PENDING = "pending"
    CREATING = "creating"
    ACTIVE = "active"
    DELETING = "deleting"
    DELETED = "deleted"
    FAILED = "failed"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return not PROVISIONING_TRANSITIONS[self]


class StackStatusClass(str, Enum):
    """Classification of a CloudFormation stack status string."""

    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    IN_PROGRESS = "IN_PROGRESS"
    UNKNOWN = "UNKNOWN"


class PollingOutcome(str, Enum):
    """Decision produced for one polling iteration."""

    CONTINUE = "CONTINUE"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class EnvelopeStatus(str, Enum):
    """Root-level status the workflow engine branches on."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


# Forward-only lifecycle. Public tenants jump pending -> active and
# active -> deleted without the intermediate polling states.
PROVISIONING_TRANSITIONS = MappingProxyType(
    {
        ProvisioningState.PENDING: frozenset(
            {
                ProvisioningState.CREATING,
                ProvisioningState.ACTIVE,
                ProvisioningState.FAILED,
                ProvisioningState.TIMEOUT,
            }
        ),
        ProvisioningState.CREATING: frozenset(
            {ProvisioningState.ACTIVE, ProvisioningState.FAILED, ProvisioningState.TIMEOUT}
        ),
        ProvisioningState.ACTIVE: frozenset(
            {ProvisioningState.DELETING, ProvisioningState.DELETED}
        ),
        ProvisioningState.DELETING: frozenset(
            {ProvisioningState.DELETED, ProvisioningState.FAILED, ProvisioningState.TIMEOUT}
        ),
        ProvisioningState.DELETED: frozenset(),
        ProvisioningState.FAILED: frozenset(),
        ProvisioningState.TIMEOUT: frozenset(),
    }
)


def can_transition(current: ProvisioningState, target: ProvisioningState) -> bool:
    """Check a lifecycle move. Re-applying the current state is always allowed."""
    return current == target or target in PROVISIONING_TRANSITIONS[current]
