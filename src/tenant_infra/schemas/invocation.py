"""Inbound payload of the infrastructure workflow steps.

The workflow engine passes accumulated state between steps. Step Functions
payloads built by older admin-portal versions are flat (``stackId``,
``tenantAccountId``, ``attempts`` at the root); both shapes are accepted.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from src.tenant_infra.core.exceptions import InvalidInputError
from src.tenant_infra.models.enums import InfrastructureOperation, SubscriptionTier


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class InfrastructureDescriptor(_CamelModel):
    target_account_id: str | None = None
    stack_id: str | None = None
    stack_name: str | None = None
    status: str | None = None
    status_reason: str | None = None
    region: str | None = None


class InvocationMetadata(_CamelModel):
    attempts: int = Field(default=0, ge=0)


class InfrastructureRequest(_CamelModel):
    operation: InfrastructureOperation = InfrastructureOperation.CREATE
    tenant_id: str | None = None
    tenant_name: str | None = None
    subscription_tier: str | None = None
    email: str | None = None
    tenant_region: str | None = None
    infrastructure: InfrastructureDescriptor = Field(default_factory=InfrastructureDescriptor)
    metadata: InvocationMetadata = Field(default_factory=InvocationMetadata)

    @model_validator(mode="before")
    @classmethod
    def fold_flat_fields(cls, data: Any) -> Any:
        """Move legacy root-level fields into ``infrastructure`` / ``metadata``."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        infrastructure = dict(data.get("infrastructure") or {})
        metadata = dict(data.get("metadata") or {})

        fallbacks = {
            "stackId": data.get("stackId"),
            "stackName": data.get("stackName") or data.get("tableName"),
            "targetAccountId": data.get("tenantAccountId"),
        }
        for key, value in fallbacks.items():
            if not infrastructure.get(key) and value:
                infrastructure[key] = value
        if metadata.get("attempts") is None and data.get("attempts") is not None:
            metadata["attempts"] = data["attempts"]
        if metadata.get("attempts") is None:
            metadata.pop("attempts", None)

        data["infrastructure"] = infrastructure
        data["metadata"] = metadata
        return data

    @property
    def region(self) -> str | None:
        return self.infrastructure.region or self.tenant_region

    def require_tenant(self) -> tuple[str, SubscriptionTier]:
        """Validate tenant identity and tier, failing fast with a descriptive error."""
        if not self.tenant_id:
            raise InvalidInputError("Invalid input: tenantId is required")
        if not self.subscription_tier:
            raise InvalidInputError("Invalid input: subscriptionTier is required")
        try:
            tier = SubscriptionTier(self.subscription_tier)
        except ValueError as e:
            raise InvalidInputError(
                'Invalid input: subscriptionTier must be "public" or "private"'
            ) from e
        return self.tenant_id, tier


def parse_request(event: dict[str, Any]) -> InfrastructureRequest:
    """Parse a raw invocation payload, mapping schema errors to InvalidInputError."""
    if not isinstance(event, dict):
        raise InvalidInputError("Invalid input: event must be a JSON object")
    try:
        return InfrastructureRequest.model_validate(event)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidInputError(f"Invalid input: malformed fields ({fields})") from e
