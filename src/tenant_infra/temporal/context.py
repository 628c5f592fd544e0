"""
Tenant context contract for Temporal workflows and activities.

Every tenant-scoped activity input carries a TenantCtx, so logs and fairness
routing always know which tenant an activity is working on.

Usage Example:
    ```python
    ctx = TenantCtx(
        tenant_id="t1",
        subscription_tier="private",
        target_account_id="123456789012",
    )

    await workflow.execute_activity(
        poll_infrastructure_activity,
        InfrastructureStepInput(ctx=ctx, event=envelope),
        ...
    )
    ```
"""

from dataclasses import dataclass
from typing import Final

# Tier-based fairness weights. Private tenants run long stack operations and
# get a larger share of the queue so they are not starved by quick public ones.
TIER_WEIGHTS: Final[dict[str, int]] = {
    "public": 1,
    "private": 3,
}


@dataclass(frozen=True)
class TenantCtx:
    """
    Standardized tenant context for all tenant-scoped activities.

    Attributes:
        tenant_id: Tenant identifier, used for isolation and as the fairness key
        subscription_tier: public or private, drives the fairness weight
        target_account_id: AWS account hosting the tenant's resources
    """

    tenant_id: str
    subscription_tier: str | None = None
    target_account_id: str | None = None

    @property
    def fairness_weight(self) -> int:
        return get_fairness_weight(self.subscription_tier)

    @classmethod
    def from_event(cls, event: dict) -> "TenantCtx":
        """Build the context from an inbound workflow payload."""
        infrastructure = event.get("infrastructure") or {}
        return cls(
            tenant_id=str(event.get("tenantId") or ""),
            subscription_tier=event.get("subscriptionTier"),
            target_account_id=infrastructure.get("targetAccountId") or event.get("tenantAccountId"),
        )


def get_fairness_weight(subscription_tier: str | None) -> int:
    """
    Get fairness weight for a subscription tier.

    Args:
        subscription_tier: public/private or None

    Returns:
        int: Fairness weight (1 for public/None, 3 for private)
    """
    return TIER_WEIGHTS.get(subscription_tier or "public", 1)
