"""Provisioning error taxonomy.

Every failure raised out of a workflow step is an InfrastructureStepError whose
message is the JSON failure envelope. The workflow engine branches on
``result.errorType`` and ``result.retryable`` instead of matching strings.
"""

import json
from typing import Any

UNCLASSIFIED_ERROR = "Unclassified"
POLLING_TIMEOUT_ERROR = "PollingTimeout"
STACK_FAILED_ERROR = "StackFailed"
UNKNOWN_STACK_STATUS_ERROR = "UnknownStackStatus"


class ProvisioningError(Exception):
    """Base class for anticipated provisioning failures."""

    error_type: str = UNCLASSIFIED_ERROR
    retryable: bool = False


class InvalidInputError(ProvisioningError):
    """Caller misconfiguration: missing or malformed invocation fields."""

    error_type = "InvalidInput"


class CrossAccountAccessDeniedError(ProvisioningError):
    """The tenant account's trust policy rejected the role assumption."""

    error_type = "CrossAccountAccessDenied"

    def __init__(self, role_arn: str, account_id: str, reason: str) -> None:
        self.role_arn = role_arn
        self.account_id = account_id
        super().__init__(f"Cross-account access denied for {role_arn}: {reason}")


class StackNotFoundError(ProvisioningError):
    """Describe returned no stack for the given identifier."""

    error_type = "StackNotFound"

    def __init__(self, stack_id: str) -> None:
        self.stack_id = stack_id
        super().__init__(f"Stack not found: {stack_id}")


class TenantNotFoundError(ProvisioningError):
    """The tenant registry has no METADATA record for the tenant."""

    error_type = "TenantNotFound"

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found in registry: {tenant_id}")


class InfrastructureStepError(ProvisioningError):
    """Terminal failure of a workflow step, carrying the serialized envelope."""

    def __init__(self, envelope: dict[str, Any]) -> None:
        self.envelope = envelope
        result = envelope.get("result", {})
        self.error_type = result.get("errorType", UNCLASSIFIED_ERROR)
        self.retryable = bool(result.get("retryable", False))
        super().__init__(json.dumps(envelope, default=str))


def classify_exception(exc: BaseException) -> tuple[str, bool]:
    """Return (error_type, retryable) for any exception.

    Unanticipated exceptions (network, throttling) are reported as retryable so
    the workflow engine's retry policy gets a chance to recover.
    """
    if isinstance(exc, ProvisioningError):
        return exc.error_type, exc.retryable
    return UNCLASSIFIED_ERROR, True
