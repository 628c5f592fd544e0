"""Tenant registry repository (DynamoDB, admin account).

Only this repository writes tenant METADATA items. Each write is a single
UpdateItem call, so a write either lands completely or not at all.

Concurrency: updates are last-writer-wins. Two polling invocations for the
same tenant must not overlap; the workflow engine runs one execution per
tenant (see ``temporal.client.tenant_workflow_id``).
"""

from enum import StrEnum
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from src.tenant_infra.core.aws import admin_resource
from src.tenant_infra.core.config import get_settings
from src.tenant_infra.core.exceptions import TenantNotFoundError
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.models.enums import InfrastructureOperation, ProvisioningState
from src.tenant_infra.models.tenant import TenantRecord, tenant_key, utc_now_iso
from src.tenant_infra.schemas.stack import StackPollResult

logger = get_logger(__name__)


class WritePolicy(StrEnum):
    """How a failed registry write is handled."""

    ADVISORY = "advisory"  # Logged and swallowed
    CRITICAL = "critical"  # Propagated to the caller


def map_stack_status_to_state(
    is_complete: bool,
    is_failed: bool,
    operation: InfrastructureOperation,
) -> ProvisioningState:
    """Map a stack classification and operation direction to a tenant state."""
    if is_complete:
        if operation is InfrastructureOperation.DELETE:
            return ProvisioningState.DELETED
        return ProvisioningState.ACTIVE
    if is_failed:
        return ProvisioningState.FAILED
    if operation is InfrastructureOperation.DELETE:
        return ProvisioningState.DELETING
    return ProvisioningState.CREATING


def _update_expression(
    set_fields: dict[str, Any],
    set_once_fields: dict[str, Any] | None = None,
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """Build a SET expression; ``set_once_fields`` only apply when absent."""
    clauses: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for attr, value in set_fields.items():
        names[f"#{attr}"] = attr
        values[f":{attr}"] = value
        clauses.append(f"#{attr} = :{attr}")
    for attr, value in (set_once_fields or {}).items():
        names[f"#{attr}"] = attr
        values[f":{attr}"] = value
        clauses.append(f"#{attr} = if_not_exists(#{attr}, :{attr})")
    return "SET " + ", ".join(clauses), names, values


class TenantRegistryRepository:
    """Reads and reconciles tenant lifecycle state in the registry table."""

    def __init__(self, table: Any | None = None):
        if table is None:
            settings = get_settings()
            table = admin_resource("dynamodb").Table(settings.tenant_registry_table_name)
        self.table = table

    def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        """Get a tenant's METADATA record, or None when absent."""
        response = self.table.get_item(Key=tenant_key(tenant_id), ConsistentRead=True)
        item = response.get("Item")
        if not item:
            return None
        return TenantRecord.from_item(item)

    def update_tenant_infrastructure_status(
        self,
        tenant_id: str,
        poll_result: StackPollResult,
        operation: InfrastructureOperation,
    ) -> dict[str, Any]:
        """
        Persist the lifecycle state implied by a stack observation.

        Re-applying the same observation is safe: completion and failure
        timestamps are only set on the first transition into that state.

        Args:
            tenant_id: Tenant identifier
            poll_result: Observation from the stack poller (or synthesized)
            operation: CREATE or DELETE

        Returns:
            The updated item

        Raises:
            TenantNotFoundError: If the tenant has no registry record
        """
        state = map_stack_status_to_state(
            poll_result.is_complete, poll_result.is_failed, operation
        )
        now = utc_now_iso()

        set_fields: dict[str, Any] = {
            "provisioningState": state.value,
            "infrastructureStatus": poll_result.status,
            "lastModified": now,
        }
        if poll_result.status_reason:
            set_fields["infrastructureStatusReason"] = poll_result.status_reason

        set_once: dict[str, Any] = {}
        if poll_result.is_complete:
            if operation is InfrastructureOperation.DELETE:
                set_once["deprovisioningCompletedAt"] = now
            else:
                set_once["provisioningCompletedAt"] = now
        if poll_result.is_failed:
            set_once["provisioningFailedAt"] = now

        logger.info(
            "Updating tenant infrastructure status",
            tenant_id=tenant_id,
            stack_status=poll_result.status,
            provisioning_state=state.value,
            operation=operation.value,
        )
        return self._write(
            WritePolicy.CRITICAL,
            "update_infrastructure_status",
            tenant_id,
            set_fields,
            set_once,
        )

    def record_polling_attempt(self, tenant_id: str, attempt: int) -> None:
        """Record the attempt counter. Advisory: never raises."""
        self._write(
            WritePolicy.ADVISORY,
            "record_polling_attempt",
            tenant_id,
            {"pollingAttempts": attempt, "lastPolledAt": utc_now_iso()},
        )

    def record_polling_timeout(self, tenant_id: str, total_attempts: int) -> dict[str, Any]:
        """Move the tenant to the terminal ``timeout`` state. Critical: raises on failure."""
        now = utc_now_iso()
        logger.warning(
            "Recording polling timeout", tenant_id=tenant_id, total_attempts=total_attempts
        )
        return self._write(
            WritePolicy.CRITICAL,
            "record_polling_timeout",
            tenant_id,
            {
                "provisioningState": ProvisioningState.TIMEOUT.value,
                "pollingTimeoutAt": now,
                "totalPollingAttempts": total_attempts,
                "lastModified": now,
            },
        )

    def record_infrastructure_requested(
        self,
        tenant_id: str,
        operation: InfrastructureOperation,
        *,
        stack_id: str | None,
        stack_name: str | None,
        target_account_id: str | None = None,
    ) -> dict[str, Any]:
        """Store the stack identity and enter creating/deleting after a launch."""
        state = (
            ProvisioningState.DELETING
            if operation is InfrastructureOperation.DELETE
            else ProvisioningState.CREATING
        )
        set_fields: dict[str, Any] = {
            "provisioningState": state.value,
            "pollingAttempts": 0,
            "lastModified": utc_now_iso(),
        }
        if stack_id:
            set_fields["stackId"] = stack_id
        if stack_name:
            set_fields["stackName"] = stack_name
        if target_account_id:
            set_fields["targetAccountId"] = target_account_id
        return self._write(
            WritePolicy.CRITICAL,
            "record_infrastructure_requested",
            tenant_id,
            set_fields,
        )

    def _write(
        self,
        policy: WritePolicy,
        action: str,
        tenant_id: str,
        set_fields: dict[str, Any],
        set_once_fields: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Apply one conditional single-item update under the given policy.

        Returns the updated item, or an empty dict when an advisory write failed.
        """
        expression, names, values = _update_expression(set_fields, set_once_fields)
        try:
            response = self.table.update_item(
                Key=tenant_key(tenant_id),
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except (ClientError, BotoCoreError) as e:
            if policy is WritePolicy.ADVISORY:
                logger.warning(
                    "Advisory registry write failed",
                    action=action,
                    tenant_id=tenant_id,
                    error=str(e),
                )
                return {}
            if (
                isinstance(e, ClientError)
                and e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"
            ):
                raise TenantNotFoundError(tenant_id) from e
            logger.error(
                "Registry write failed",
                action=action,
                tenant_id=tenant_id,
                error=str(e),
            )
            raise
        return response.get("Attributes", {})
