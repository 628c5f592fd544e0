"""Integration test fixtures.

The full launch-then-poll path runs against moto's STS, CloudFormation and
DynamoDB backends with the real broker, launcher and orchestrator wired
together. Both admin and tenant account resolve to moto's default account.
"""

import pytest

from src.tenant_infra.core.config import Settings
from src.tenant_infra.repositories import TenantRegistryRepository
from src.tenant_infra.services import (
    CrossAccountCredentialBroker,
    InfrastructureLauncher,
    ProvisioningOrchestrator,
)


@pytest.fixture
def broker(aws: None, settings: Settings) -> CrossAccountCredentialBroker:
    return CrossAccountCredentialBroker(settings=settings)


@pytest.fixture
def launcher(
    registry: TenantRegistryRepository,
    broker: CrossAccountCredentialBroker,
    settings: Settings,
) -> InfrastructureLauncher:
    return InfrastructureLauncher(registry=registry, broker=broker, settings=settings)


@pytest.fixture
def orchestrator(
    registry: TenantRegistryRepository,
    broker: CrossAccountCredentialBroker,
    settings: Settings,
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(registry=registry, broker=broker, settings=settings)
