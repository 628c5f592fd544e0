"""Cross-account credential broker.

Exchanges a tenant account id for short-lived credentials by assuming the
well-known tenant role. The broker never retries; a rejected trust policy is
reported as CrossAccountAccessDeniedError, everything else propagates as-is.
"""

import re
from typing import Any

import boto3
from botocore.exceptions import ClientError

from src.tenant_infra.core.aws import admin_client, client_config
from src.tenant_infra.core.config import Settings, get_settings
from src.tenant_infra.core.exceptions import CrossAccountAccessDeniedError, InvalidInputError
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.schemas.credentials import TemporaryCredentials

logger = get_logger(__name__)

ACCESS_DENIED_CODES = frozenset({"AccessDenied", "AccessDeniedException"})

# RoleSessionName: [\w+=,.@-]{2,64}
_SESSION_NAME_INVALID = re.compile(r"[^\w+=,.@-]")
MAX_SESSION_NAME_LENGTH = 64


def build_session_name(prefix: str, tenant_id: str) -> str:
    """Session name used for CloudTrail attribution of the assumed role."""
    name = _SESSION_NAME_INVALID.sub("-", f"{prefix}-{tenant_id}")
    return name[:MAX_SESSION_NAME_LENGTH]


class CrossAccountCredentialBroker:
    """Assumes the tenant role in a target account."""

    def __init__(self, sts_client: Any | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.sts = sts_client or admin_client("sts")

    def assume_tenant_role(
        self,
        target_account_id: str | None,
        tenant_id: str,
        external_id: str | None = None,
    ) -> TemporaryCredentials:
        """
        Assume the cross-account tenant role.

        Args:
            target_account_id: AWS account hosting the tenant's resources
            tenant_id: Tenant identifier, used for the session name only
            external_id: Overrides the configured external id

        Returns:
            TemporaryCredentials valid for ``assume_role_duration_seconds``

        Raises:
            InvalidInputError: If no target account is given
            CrossAccountAccessDeniedError: If the trust relationship rejects the call
        """
        if not target_account_id:
            raise InvalidInputError("Invalid input: infrastructure.targetAccountId is required")

        role_arn = self.settings.role_arn_for(target_account_id)
        session_name = build_session_name(self.settings.cross_account_session_prefix, tenant_id)
        params: dict[str, Any] = {
            "RoleArn": role_arn,
            "RoleSessionName": session_name,
            "DurationSeconds": self.settings.assume_role_duration_seconds,
        }
        external_id = external_id or self.settings.cross_account_external_id
        if external_id:
            params["ExternalId"] = external_id

        logger.info(
            "Assuming cross-account role",
            role_arn=role_arn,
            session_name=session_name,
            target_account_id=target_account_id,
        )
        try:
            result = self.sts.assume_role(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            if error.get("Code") in ACCESS_DENIED_CODES:
                logger.error(
                    "Cross-account access denied",
                    role_arn=role_arn,
                    target_account_id=target_account_id,
                    error=error.get("Message"),
                )
                raise CrossAccountAccessDeniedError(
                    role_arn, target_account_id, error.get("Message", "access denied")
                ) from e
            raise

        credentials = result["Credentials"]
        assumed_arn = result.get("AssumedRoleUser", {}).get("Arn")
        logger.debug("Assumed cross-account role", assumed_role_arn=assumed_arn)
        return TemporaryCredentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials.get("Expiration"),
            assumed_role_arn=assumed_arn,
        )

    def session_for(
        self, credentials: TemporaryCredentials, region: str | None = None
    ) -> boto3.session.Session:
        """boto3 session scoped to the assumed role and tenant region."""
        return boto3.session.Session(
            region_name=region or self.settings.aws_region,
            **credentials.as_boto_kwargs(),
        )

    def client_for(
        self,
        credentials: TemporaryCredentials,
        service_name: str,
        region: str | None = None,
    ) -> Any:
        """Client for ``service_name`` in the tenant account."""
        return self.session_for(credentials, region).client(
            service_name,
            endpoint_url=self.settings.aws_endpoint_url,
            config=client_config(),
        )

    def resource_for(
        self,
        credentials: TemporaryCredentials,
        service_name: str,
        region: str | None = None,
    ) -> Any:
        return self.session_for(credentials, region).resource(
            service_name,
            endpoint_url=self.settings.aws_endpoint_url,
            config=client_config(),
        )
