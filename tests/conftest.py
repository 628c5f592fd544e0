"""Root test fixtures shared across all test types.

AWS is replaced by moto's in-memory backend; CloudFormation clients are
replaced by mocks in the tests that need them.
"""

import os

# Set test environment before any app imports
os.environ.setdefault("APP_ENV", "testing")
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("AWS_PROFILE", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Callable, Generator
from typing import Any

import boto3
import pytest
from moto import mock_aws

from src.tenant_infra.core.aws import reset_admin_session
from src.tenant_infra.core.config import Settings, get_settings
from src.tenant_infra.models import tenant_key
from src.tenant_infra.repositories import TenantRegistryRepository
from tests.helpers import REGION

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


def _create_pk_sk_table(dynamodb: Any, table_name: str) -> Any:
    return dynamodb.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the developer's .env."""
    return Settings(_env_file=None)


# --- AWS Test Fixtures (shared) ---


@pytest.fixture
def aws() -> Generator[None]:
    """Activate moto for the duration of the test.

    Also drops the cached admin session so it is rebuilt inside the mock.
    """
    with mock_aws():
        reset_admin_session()
        yield
        reset_admin_session()


@pytest.fixture
def dynamodb(aws: None) -> Any:
    return boto3.resource("dynamodb", region_name=REGION)


@pytest.fixture
def registry_table(dynamodb: Any, settings: Settings) -> Any:
    """Tenant registry table in the (mocked) admin account."""
    return _create_pk_sk_table(dynamodb, settings.tenant_registry_table_name)


@pytest.fixture
def public_table(dynamodb: Any, settings: Settings) -> Any:
    """Shared public-tier tenant table (tenant account)."""
    return _create_pk_sk_table(dynamodb, settings.tenant_public_table_name)


@pytest.fixture
def registry(registry_table: Any) -> TenantRegistryRepository:
    return TenantRegistryRepository(table=registry_table)


@pytest.fixture
def seed_tenant(registry_table: Any) -> Callable[..., dict[str, Any]]:
    """Insert a tenant METADATA item as the admin portal would.

    Usage: seed_tenant("t1", subscriptionTier="private", provisioningState="creating")
    """

    def _seed(tenant_id: str, **attributes: Any) -> dict[str, Any]:
        item = {
            **tenant_key(tenant_id),
            "tenantId": tenant_id,
            "tenantName": f"{tenant_id} corp",
            "subscriptionTier": "private",
            "provisioningState": "creating",
            **attributes,
        }
        registry_table.put_item(Item=item)
        return item

    return _seed


@pytest.fixture
def read_tenant_item(registry_table: Any) -> Callable[[str], dict[str, Any] | None]:
    """Raw registry item for assertions on attributes the model does not expose."""

    def _read(tenant_id: str) -> dict[str, Any] | None:
        return registry_table.get_item(Key=tenant_key(tenant_id), ConsistentRead=True).get("Item")

    return _read
