"""Repository layer - registry data access."""

from src.tenant_infra.repositories.tenant_registry import (
    TenantRegistryRepository,
    WritePolicy,
    map_stack_status_to_state,
)

__all__ = [
    "TenantRegistryRepository",
    "WritePolicy",
    "map_stack_status_to_state",
]
