"""CloudFormation stack status poller.

Decision precedence for one polling iteration:
1. complete status  -> COMPLETE (regardless of attempts)
2. failed status    -> FAILED (regardless of attempts)
3. attempts >= max  -> TIMEOUT
4. in-progress      -> CONTINUE
5. anything else    -> UNKNOWN

Completion and failure are facts about the stack and are never masked by a
timeout. Timeout is checked before in-progress so polling always terminates.
"""

from typing import Any

from botocore.exceptions import ClientError

from src.tenant_infra.core.config import get_settings
from src.tenant_infra.core.exceptions import StackNotFoundError
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.models.enums import PollingOutcome, StackStatusClass
from src.tenant_infra.schemas.stack import (
    PollingDecision,
    StackEvent,
    StackPollResult,
    classify_stack_status,
)

logger = get_logger(__name__)

DEFAULT_MAX_POLL_ATTEMPTS = 60
DEFAULT_EVENT_LIMIT = 20


def should_continue_polling(
    status: str | None,
    attempts: int,
    max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
) -> PollingDecision:
    """Decide what the workflow engine should do next. Pure function."""
    classification = classify_stack_status(status)

    if classification is StackStatusClass.COMPLETE:
        return PollingDecision(PollingOutcome.COMPLETE, "Stack completed successfully")
    if classification is StackStatusClass.FAILED:
        return PollingDecision(PollingOutcome.FAILED, "Stack failed")
    if attempts >= max_attempts:
        return PollingDecision(PollingOutcome.TIMEOUT, "Maximum polling attempts reached")
    if classification is StackStatusClass.IN_PROGRESS:
        return PollingDecision(PollingOutcome.CONTINUE, "Stack still in progress")
    return PollingDecision(PollingOutcome.UNKNOWN, f"Unknown stack status: {status}")


def extract_stack_outputs(outputs: list[dict[str, Any]]) -> dict[str, dict[str, str | None]]:
    """Stack outputs keyed by OutputKey."""
    return {
        output["OutputKey"]: {
            "value": output.get("OutputValue"),
            "description": output.get("Description"),
            "exportName": output.get("ExportName"),
        }
        for output in outputs
    }


def extract_stack_parameters(parameters: list[dict[str, Any]]) -> dict[str, str]:
    """Stack parameters keyed by ParameterKey."""
    return {param["ParameterKey"]: param.get("ParameterValue", "") for param in parameters}


def is_missing_stack_error(error: ClientError) -> bool:
    details = error.response.get("Error", {})
    return details.get("Code") == "ValidationError" and "does not exist" in details.get(
        "Message", ""
    )


class StackPoller:
    """Reads stack state through a CloudFormation client scoped to the tenant account."""

    def __init__(
        self,
        cloudformation_client: Any,
        max_attempts: int | None = None,
        event_limit: int | None = None,
    ):
        settings = get_settings()
        self.cloudformation = cloudformation_client
        self.max_attempts = max_attempts or settings.max_poll_attempts
        self.event_limit = event_limit or settings.stack_event_limit

    def poll_stack_status(self, stack_id: str, tenant_id: str) -> StackPollResult:
        """
        Describe a stack and classify its status.

        A missing stack is an error, not a delete-completion signal.

        Raises:
            StackNotFoundError: If describe returns no stack
        """
        logger.info("Polling stack status", stack_id=stack_id, tenant_id=tenant_id)
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_id)
        except ClientError as e:
            if is_missing_stack_error(e):
                raise StackNotFoundError(stack_id) from e
            logger.error(
                "Failed to poll stack status",
                stack_id=stack_id,
                tenant_id=tenant_id,
                error=str(e),
            )
            raise

        stacks = response.get("Stacks") or []
        if not stacks:
            raise StackNotFoundError(stack_id)

        stack = stacks[0]
        result = StackPollResult(
            stack_id=stack.get("StackId", stack_id),
            stack_name=stack.get("StackName", ""),
            status=stack["StackStatus"],
            status_reason=stack.get("StackStatusReason"),
            creation_time=stack.get("CreationTime"),
            last_updated_time=stack.get("LastUpdatedTime"),
            outputs=extract_stack_outputs(stack.get("Outputs") or []),
            parameters=extract_stack_parameters(stack.get("Parameters") or []),
        )
        logger.info(
            "Retrieved stack status",
            stack_id=result.stack_id,
            stack_name=result.stack_name,
            stack_status=result.status,
            classification=result.classification.value,
        )
        return result

    def should_continue_polling(self, status: str | None, attempts: int) -> PollingDecision:
        return should_continue_polling(status, attempts, self.max_attempts)

    def get_stack_events(self, stack_id: str, tenant_id: str) -> list[StackEvent]:
        """Most recent stack events for diagnostics. Best effort: never raises."""
        try:
            response = self.cloudformation.describe_stack_events(StackName=stack_id)
        except Exception as e:
            logger.warning(
                "Failed to retrieve stack events",
                stack_id=stack_id,
                tenant_id=tenant_id,
                error=str(e),
            )
            return []

        # CloudFormation returns events in reverse chronological order
        events = [
            StackEvent(
                timestamp=event.get("Timestamp"),
                logical_resource_id=event.get("LogicalResourceId"),
                physical_resource_id=event.get("PhysicalResourceId"),
                resource_type=event.get("ResourceType"),
                resource_status=event.get("ResourceStatus"),
                resource_status_reason=event.get("ResourceStatusReason"),
            )
            for event in (response.get("StackEvents") or [])[: self.event_limit]
        ]
        logger.debug("Retrieved stack events", stack_id=stack_id, event_count=len(events))
        return events
