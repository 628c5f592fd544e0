from functools import lru_cache

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Tenant Infrastructure Provisioner"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # AWS
    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None  # LocalStack / DynamoDB Local only
    aws_client_max_attempts: int = 1  # No SDK-level retries; the workflow engine retries

    # Tenant registry (admin account)
    tenant_registry_table_name: str = "platform-admin"
    # Shared table for public-tier tenants (tenant account)
    tenant_public_table_name: str = "TENANT_PUBLIC"

    # Cross-account access
    cross_account_role_name: str = "CrossAccountTenantRole"
    cross_account_external_id: str | None = None
    cross_account_session_prefix: str = "tenant-infra-worker"
    assume_role_duration_seconds: int = 3600

    # CloudFormation polling
    max_poll_attempts: int = 60  # 30 minutes at the default interval
    poll_interval_seconds: int = 30
    stack_event_limit: int = 20
    failure_event_count: int = 5  # Events embedded in FAILED envelopes

    # Per-tenant stacks
    stack_name_prefix: str = "tenant"
    workspace: str = "dev"

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_queue_prefix: str = "tenant-infra"
    temporal_queue_shards: int = 1

    @field_validator("assume_role_duration_seconds")
    @classmethod
    def validate_role_duration(cls, v: int) -> int:
        # STS hard limits for AssumeRole
        if not 900 <= v <= 43200:
            raise ValueError("ASSUME_ROLE_DURATION_SECONDS must be between 900 and 43200")
        return v

    @field_validator("max_poll_attempts", "poll_interval_seconds", "temporal_queue_shards")
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name.upper()} must be at least 1")
        return v

    @field_validator("stack_event_limit")
    @classmethod
    def validate_event_limit(cls, v: int) -> int:
        # DescribeStackEvents returns at most 100 events per page
        if not 1 <= v <= 100:
            raise ValueError("STACK_EVENT_LIMIT must be between 1 and 100")
        return v

    @field_validator("aws_client_max_attempts")
    @classmethod
    def validate_client_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("AWS_CLIENT_MAX_ATTEMPTS must be at least 1")
        return v

    def role_arn_for(self, account_id: str) -> str:
        """Cross-account role ARN in the given tenant account."""
        return f"arn:aws:iam::{account_id}:role/{self.cross_account_role_name}"

    def stack_name_for(self, tenant_id: str) -> str:
        return f"{self.stack_name_prefix}-{tenant_id}-dynamodb"

    def tenant_table_name_for(self, tenant_id: str) -> str:
        return f"{self.stack_name_prefix}-{tenant_id}-admin-private-{self.workspace}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
