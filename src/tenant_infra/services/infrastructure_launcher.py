"""Infrastructure launcher: the first step of the create and delete workflows.

Public tenants share one table in the tenant account. Creating puts one item
and deleting removes every row under the tenant's partition key; both complete
immediately. Private tenants get a dedicated CloudFormation stack; launching
only starts the stack operation and the orchestrator polls it to completion.
"""

import asyncio
import json
from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from src.tenant_infra.core.config import Settings, get_settings
from src.tenant_infra.core.exceptions import (
    InfrastructureStepError,
    InvalidInputError,
    StackNotFoundError,
    TenantNotFoundError,
)
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.models import (
    EnvelopeStatus,
    InfrastructureOperation,
    ProvisioningState,
    SubscriptionTier,
    utc_now_iso,
)
from src.tenant_infra.repositories import TenantRegistryRepository
from src.tenant_infra.schemas import InfrastructureRequest, TemporaryCredentials, parse_request
from src.tenant_infra.services.credential_broker import CrossAccountCredentialBroker
from src.tenant_infra.services.envelopes import StepTimer, build_envelope, step_failure
from src.tenant_infra.services.stack_poller import is_missing_stack_error

logger = get_logger(__name__)

CREATE_OPERATION = "CREATE_INFRASTRUCTURE"
DELETE_OPERATION = "DELETE_INFRASTRUCTURE"

PUBLIC_ENTRY_SORT_KEY = "init"
MANAGED_BY = "tenant-infra-launcher"


def build_tenant_table_template(tenant_id: str, table_name: str, environment: str) -> dict[str, Any]:
    """CloudFormation template for a private tenant's dedicated table."""
    tags = [
        {"Key": "TenantId", "Value": tenant_id},
        {"Key": "Environment", "Value": environment},
        {"Key": "ManagedBy", "Value": MANAGED_BY},
        {"Key": "SubscriptionTier", "Value": SubscriptionTier.PRIVATE.value},
    ]
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": f"DynamoDB table for tenant {tenant_id}",
        "Resources": {
            "TenantTable": {
                "Type": "AWS::DynamoDB::Table",
                "Properties": {
                    "TableName": table_name,
                    "AttributeDefinitions": [
                        {"AttributeName": "pk", "AttributeType": "S"},
                        {"AttributeName": "sk", "AttributeType": "S"},
                    ],
                    "KeySchema": [
                        {"AttributeName": "pk", "KeyType": "HASH"},
                        {"AttributeName": "sk", "KeyType": "RANGE"},
                    ],
                    "BillingMode": "PAY_PER_REQUEST",
                    "PointInTimeRecoverySpecification": {"PointInTimeRecoveryEnabled": True},
                    "SSESpecification": {"SSEEnabled": True},
                    "Tags": tags,
                },
            }
        },
        "Outputs": {
            "TenantTableName": {
                "Description": "Name of the created DynamoDB table",
                "Value": {"Ref": "TenantTable"},
                "Export": {"Name": {"Fn::Sub": "${AWS::StackName}-TenantTableName"}},
            },
            "TenantTableArn": {
                "Description": "ARN of the created DynamoDB table",
                "Value": {"Fn::GetAtt": ["TenantTable", "Arn"]},
                "Export": {"Name": {"Fn::Sub": "${AWS::StackName}-TenantTableArn"}},
            },
        },
    }


class InfrastructureLauncher:
    """Starts tenant infrastructure creation or deletion in the tenant account."""

    def __init__(
        self,
        registry: TenantRegistryRepository | None = None,
        broker: CrossAccountCredentialBroker | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or TenantRegistryRepository()
        self.broker = broker or CrossAccountCredentialBroker(settings=self.settings)

    async def create_infrastructure(
        self, event: dict[str, Any], request_id: str | None = None
    ) -> dict[str, Any]:
        """
        Create a tenant's table entry (public) or start its stack (private).

        Returns:
            Envelope consumed by the poll step (``metadata.attempts`` reset to 0)

        Raises:
            InfrastructureStepError: On any failure; the message is the JSON envelope
        """
        return await self._run(
            event, request_id, InfrastructureOperation.CREATE, CREATE_OPERATION
        )

    async def delete_infrastructure(
        self, event: dict[str, Any], request_id: str | None = None
    ) -> dict[str, Any]:
        """Delete a tenant's table entry (public) or start deleting its stack (private)."""
        return await self._run(
            event, request_id, InfrastructureOperation.DELETE, DELETE_OPERATION
        )

    async def _run(
        self,
        event: dict[str, Any],
        request_id: str | None,
        operation: InfrastructureOperation,
        operation_name: str,
    ) -> dict[str, Any]:
        timer = StepTimer()
        source = event if isinstance(event, dict) else {}
        try:
            request = parse_request({**source, "operation": operation.value})
            tenant_id, tier = request.require_tenant()
            target_account_id = request.infrastructure.target_account_id
            if not target_account_id:
                raise InvalidInputError(
                    "Invalid input: infrastructure.targetAccountId is required"
                )

            await asyncio.to_thread(self._check_lifecycle, tenant_id, tier, operation)

            logger.info(
                "Launching tenant infrastructure",
                tenant_id=tenant_id,
                subscription_tier=tier.value,
                operation=operation.value,
                target_account_id=target_account_id,
            )
            credentials = await asyncio.to_thread(
                self.broker.assume_tenant_role, target_account_id, tenant_id
            )

            if tier is SubscriptionTier.PUBLIC:
                launched = await asyncio.to_thread(
                    self._launch_public, request, credentials, operation
                )
            else:
                launched = await asyncio.to_thread(
                    self._launch_private, request, credentials, operation
                )
                await asyncio.to_thread(
                    self.registry.record_infrastructure_requested,
                    tenant_id,
                    operation,
                    stack_id=launched["stackId"],
                    stack_name=launched["stackName"],
                    target_account_id=target_account_id,
                )
        except InfrastructureStepError:
            raise
        except Exception as e:
            logger.error(
                "Infrastructure launch failed",
                tenant_id=source.get("tenantId"),
                operation=operation.value,
                error=str(e),
                error_type=type(e).__name__,
                execution_time_ms=timer.elapsed_ms(),
            )
            raise step_failure(source, e, operation=operation_name, timer=timer) from e

        metadata = dict(source.get("metadata") or {})
        if request_id:
            metadata["requestId"] = request_id
        metadata["attempts"] = 0

        envelope = build_envelope(
            source,
            status=(
                EnvelopeStatus.COMPLETE
                if tier is SubscriptionTier.PUBLIC
                else EnvelopeStatus.IN_PROGRESS
            ),
            infrastructure={
                **request.infrastructure.model_dump(by_alias=True, exclude_none=True),
                "stackId": launched["stackId"],
                "stackName": launched["stackName"],
                "status": launched["status"],
            },
            metadata=metadata,
            result={
                "success": True,
                "operation": operation_name,
                "tenantId": tenant_id,
                "subscriptionTier": tier.value,
                "tableName": launched["tableName"],
                "stackId": launched["stackId"],
                "launchedAt": launched["launchedAt"],
                "executionTime": timer.elapsed_ms(),
            },
        )
        # The poll step branches on ``operation``
        envelope["operation"] = operation.value
        logger.info(
            "Tenant infrastructure launched",
            tenant_id=tenant_id,
            subscription_tier=tier.value,
            operation=operation.value,
            stack_status=launched["status"],
            execution_time_ms=envelope["result"]["executionTime"],
        )
        return envelope

    def _check_lifecycle(
        self,
        tenant_id: str,
        tier: SubscriptionTier,
        operation: InfrastructureOperation,
    ) -> None:
        """Reject launches the registry lifecycle does not allow."""
        record = self.registry.get_tenant(tenant_id)
        if record is None:
            raise TenantNotFoundError(tenant_id)

        if tier is SubscriptionTier.PUBLIC:
            # No stack to poll: the tenant moves straight to active/deleted
            target = (
                ProvisioningState.DELETED
                if operation is InfrastructureOperation.DELETE
                else ProvisioningState.ACTIVE
            )
        else:
            target = (
                ProvisioningState.DELETING
                if operation is InfrastructureOperation.DELETE
                else ProvisioningState.CREATING
            )
        if not record.can_move_to(target):
            raise InvalidInputError(
                f"Invalid input: tenant {tenant_id} is {record.provisioning_state.value}, "
                f"cannot start {operation.value}"
            )

    def _launch_public(
        self,
        request: InfrastructureRequest,
        credentials: TemporaryCredentials,
        operation: InfrastructureOperation,
    ) -> dict[str, Any]:
        tenant_id = request.tenant_id
        table_name = self.settings.tenant_public_table_name
        table = self.broker.resource_for(credentials, "dynamodb", request.region).Table(
            table_name
        )
        key = {"pk": f"TENANT#{tenant_id}", "sk": PUBLIC_ENTRY_SORT_KEY}
        now = utc_now_iso()

        if operation is InfrastructureOperation.DELETE:
            deleted = self._delete_public_rows(table, key["pk"])
            status = "DELETE_COMPLETE"
            logger.info(
                "Deleted tenant entries from public table",
                tenant_id=tenant_id,
                items_deleted=deleted,
            )
        else:
            item = {
                **key,
                "tenantId": tenant_id,
                "tenantName": request.tenant_name,
                "email": request.email,
                "status": "initialized",
                "subscriptionTier": SubscriptionTier.PUBLIC.value,
                "version": "1.0.0",
                "createdAt": now,
                "lastModified": now,
            }
            table.put_item(Item={k: v for k, v in item.items() if v is not None})
            status = "CREATE_COMPLETE"
            logger.info("Created tenant entry in public table", tenant_id=tenant_id)

        return {
            "stackId": None,
            "stackName": table_name,
            "tableName": table_name,
            "status": status,
            "launchedAt": now,
        }

    @staticmethod
    def _delete_public_rows(table: Any, partition_key: str) -> int:
        """Delete every row under the tenant's partition key. Returns the row count."""
        keys: list[dict[str, Any]] = []
        query: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(partition_key),
            "ProjectionExpression": "pk, sk",
        }
        while True:
            page = table.query(**query)
            keys.extend({"pk": item["pk"], "sk": item["sk"]} for item in page.get("Items", []))
            if "LastEvaluatedKey" not in page:
                break
            query["ExclusiveStartKey"] = page["LastEvaluatedKey"]

        with table.batch_writer() as batch:
            for row_key in keys:
                batch.delete_item(Key=row_key)
        return len(keys)

    def _launch_private(
        self,
        request: InfrastructureRequest,
        credentials: TemporaryCredentials,
        operation: InfrastructureOperation,
    ) -> dict[str, Any]:
        tenant_id = request.tenant_id
        cloudformation = self.broker.client_for(credentials, "cloudformation", request.region)
        table_name = self.settings.tenant_table_name_for(tenant_id)

        if operation is InfrastructureOperation.DELETE:
            stack_ref = request.infrastructure.stack_id or self.settings.stack_name_for(tenant_id)
            stack_id, stack_name = self._resolve_stack(cloudformation, stack_ref)
            cloudformation.delete_stack(StackName=stack_id)
            status = "DELETE_IN_PROGRESS"
            logger.info("Stack deletion initiated", tenant_id=tenant_id, stack_id=stack_id)
        else:
            stack_name = self.settings.stack_name_for(tenant_id)
            stack_id = self._create_stack(cloudformation, request, stack_name, table_name)
            status = "CREATE_IN_PROGRESS"

        return {
            "stackId": stack_id,
            "stackName": stack_name,
            "tableName": table_name,
            "status": status,
            "launchedAt": utc_now_iso(),
        }

    def _create_stack(
        self,
        cloudformation: Any,
        request: InfrastructureRequest,
        stack_name: str,
        table_name: str,
    ) -> str:
        """Create the tenant stack; a stack left by a previous attempt is reused."""
        tenant_id = request.tenant_id
        template = build_tenant_table_template(tenant_id, table_name, self.settings.app_env)
        tags = [
            {"Key": "TenantId", "Value": tenant_id},
            {"Key": "TenantName", "Value": request.tenant_name or tenant_id},
            {"Key": "CreatedBy", "Value": MANAGED_BY},
            {"Key": "Environment", "Value": self.settings.app_env},
        ]
        try:
            response = cloudformation.create_stack(
                StackName=stack_name,
                TemplateBody=json.dumps(template),
                Tags=tags,
                OnFailure="ROLLBACK",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "AlreadyExistsException":
                raise
            stack_id, _ = self._resolve_stack(cloudformation, stack_name)
            logger.info(
                "Stack already exists, reusing", tenant_id=tenant_id, stack_id=stack_id
            )
            return stack_id

        stack_id = response["StackId"]
        logger.info(
            "Stack creation initiated",
            tenant_id=tenant_id,
            stack_id=stack_id,
            stack_name=stack_name,
            table_name=table_name,
        )
        return stack_id

    @staticmethod
    def _resolve_stack(cloudformation: Any, stack_ref: str) -> tuple[str, str]:
        """Resolve a stack name or ARN to (stack ARN, stack name).

        Polling by ARN keeps working after deletion; polling by name does not.
        """
        try:
            response = cloudformation.describe_stacks(StackName=stack_ref)
        except ClientError as e:
            if is_missing_stack_error(e):
                raise StackNotFoundError(stack_ref) from e
            raise
        stacks = response.get("Stacks") or []
        if not stacks:
            raise StackNotFoundError(stack_ref)
        return stacks[0]["StackId"], stacks[0]["StackName"]
