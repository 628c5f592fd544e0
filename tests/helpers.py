"""Test helper functions for common payload and observation patterns."""

from typing import Any

from src.tenant_infra.schemas import StackEvent, StackPollResult

TENANT_ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
STACK_ARN = (
    f"arn:aws:cloudformation:{REGION}:{TENANT_ACCOUNT_ID}:stack/tenant-t1-dynamodb/"
    "12345678-1234-1234-1234-123456789012"
)


def private_event(
    tenant_id: str = "t1",
    *,
    operation: str = "CREATE",
    status: str = "CREATE_IN_PROGRESS",
    attempts: int = 0,
    stack_id: str | None = STACK_ARN,
    **extra: Any,
) -> dict[str, Any]:
    """Poll-step payload for a private tenant."""
    infrastructure: dict[str, Any] = {"targetAccountId": TENANT_ACCOUNT_ID, "status": status}
    if stack_id:
        infrastructure["stackId"] = stack_id
        infrastructure["stackName"] = f"tenant-{tenant_id}-dynamodb"
    return {
        "operation": operation,
        "tenantId": tenant_id,
        "tenantName": f"{tenant_id} corp",
        "subscriptionTier": "private",
        "infrastructure": infrastructure,
        "metadata": {"attempts": attempts},
        **extra,
    }


def public_event(tenant_id: str = "p1", *, operation: str = "CREATE", **extra: Any) -> dict[str, Any]:
    """Poll-step payload for a public tenant (no stack)."""
    return {
        "operation": operation,
        "tenantId": tenant_id,
        "tenantName": f"{tenant_id} corp",
        "subscriptionTier": "public",
        "infrastructure": {"targetAccountId": TENANT_ACCOUNT_ID},
        **extra,
    }


def launch_event(
    tenant_id: str = "t1",
    *,
    tier: str = "private",
    operation: str = "CREATE",
    **extra: Any,
) -> dict[str, Any]:
    """Flat payload the admin portal sends to the launch step."""
    return {
        "operation": operation,
        "tenantId": tenant_id,
        "tenantName": f"{tenant_id} corp",
        "subscriptionTier": tier,
        "tenantAccountId": TENANT_ACCOUNT_ID,
        "email": f"admin@{tenant_id}.example.com",
        "createdBy": "admin",
        **extra,
    }


def stack_result(
    status: str,
    *,
    reason: str | None = None,
    outputs: dict[str, dict[str, str | None]] | None = None,
) -> StackPollResult:
    return StackPollResult(
        stack_id=STACK_ARN,
        stack_name="tenant-t1-dynamodb",
        status=status,
        status_reason=reason,
        outputs=outputs or {},
    )


def stack_events(count: int) -> list[StackEvent]:
    return [
        StackEvent(
            timestamp=None,
            logical_resource_id=f"Resource{i}",
            physical_resource_id=None,
            resource_type="AWS::DynamoDB::Table",
            resource_status="CREATE_FAILED",
            resource_status_reason=f"reason {i}",
        )
        for i in range(count)
    ]
