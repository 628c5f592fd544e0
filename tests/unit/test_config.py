"""Tests for settings validation and derived names."""

import pytest
from pydantic import ValidationError

from src.tenant_infra.core.config import Settings, get_settings

pytestmark = pytest.mark.unit


class TestSettingsValidation:
    """Invalid configuration fails at startup, not mid-workflow."""

    @pytest.mark.parametrize("duration", [899, 43201])
    def test_role_duration_bounds(self, duration):
        with pytest.raises(ValidationError, match="ASSUME_ROLE_DURATION_SECONDS"):
            Settings(_env_file=None, assume_role_duration_seconds=duration)

    @pytest.mark.parametrize(
        "field", ["max_poll_attempts", "poll_interval_seconds", "temporal_queue_shards"]
    )
    def test_positive_fields(self, field):
        with pytest.raises(ValidationError, match=field.upper()):
            Settings(_env_file=None, **{field: 0})

    @pytest.mark.parametrize("limit", [0, 101])
    def test_event_limit_bounds(self, limit):
        with pytest.raises(ValidationError, match="STACK_EVENT_LIMIT"):
            Settings(_env_file=None, stack_event_limit=limit)

    def test_client_attempts(self):
        with pytest.raises(ValidationError, match="AWS_CLIENT_MAX_ATTEMPTS"):
            Settings(_env_file=None, aws_client_max_attempts=0)

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_POLL_ATTEMPTS", "10")
        monkeypatch.setenv("CROSS_ACCOUNT_ROLE_NAME", "TenantRole")

        settings = Settings(_env_file=None)

        assert settings.max_poll_attempts == 10
        assert settings.cross_account_role_name == "TenantRole"


class TestDerivedNames:
    def test_defaults(self, settings):
        assert settings.max_poll_attempts == 60
        assert settings.poll_interval_seconds == 30
        assert settings.aws_client_max_attempts == 1

    def test_role_arn(self, settings):
        assert settings.role_arn_for("123456789012") == (
            "arn:aws:iam::123456789012:role/CrossAccountTenantRole"
        )

    def test_stack_and_table_names(self, settings):
        assert settings.stack_name_for("t1") == "tenant-t1-dynamodb"
        assert settings.tenant_table_name_for("t1") == "tenant-t1-admin-private-dev"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
