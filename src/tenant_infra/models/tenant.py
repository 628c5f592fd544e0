"""Tenant registry record (admin account, one item per tenant)."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.tenant_infra.models.enums import ProvisioningState, SubscriptionTier, can_transition

METADATA_SORT_KEY = "METADATA"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (registry timestamp format)."""
    return datetime.now(UTC).isoformat()


def tenant_key(tenant_id: str) -> dict[str, str]:
    """Primary key of a tenant's METADATA item."""
    return {"pk": f"TENANT#{tenant_id}", "sk": METADATA_SORT_KEY}


class TenantRecord(BaseModel):
    """Tenant registration record as stored in the registry table.

    Attribute names are camelCase in DynamoDB; unknown attributes written by
    the admin portal are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    tenant_id: str
    tenant_name: str | None = None
    subscription_tier: SubscriptionTier | None = None
    provisioning_state: ProvisioningState = ProvisioningState.PENDING
    target_account_id: str | None = None
    stack_id: str | None = None
    stack_name: str | None = None
    infrastructure_status: str | None = None
    infrastructure_status_reason: str | None = None
    polling_attempts: int = 0
    last_polled_at: str | None = None
    provisioning_completed_at: str | None = None
    deprovisioning_completed_at: str | None = None
    provisioning_failed_at: str | None = None
    polling_timeout_at: str | None = None
    last_modified: str | None = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "TenantRecord":
        """Build a record from a raw DynamoDB item."""
        data = dict(item)
        if "tenantId" not in data:
            data["tenantId"] = str(data.get("pk", "")).removeprefix("TENANT#")
        return cls.model_validate(data)

    def can_move_to(self, target: ProvisioningState) -> bool:
        return can_transition(self.provisioning_state, target)
