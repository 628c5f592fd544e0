"""Tests for StackPoller against a mocked CloudFormation client."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.tenant_infra.core.exceptions import StackNotFoundError
from src.tenant_infra.models import PollingOutcome
from src.tenant_infra.services import StackPoller

pytestmark = pytest.mark.unit

STACK_ARN = "arn:aws:cloudformation:us-east-1:123456789012:stack/tenant-t1-dynamodb/abc"
CREATED = datetime(2025, 9, 28, 12, 0, tzinfo=UTC)


def _validation_error(message: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ValidationError", "Message": message}},
        "DescribeStacks",
    )


def _stack_event(i: int) -> dict:
    return {
        "Timestamp": datetime(2025, 9, 28, 12, i, tzinfo=UTC),
        "LogicalResourceId": f"Resource{i}",
        "PhysicalResourceId": f"physical-{i}",
        "ResourceType": "AWS::DynamoDB::Table",
        "ResourceStatus": "CREATE_FAILED",
        "ResourceStatusReason": f"reason {i}",
    }


@pytest.fixture
def cloudformation() -> MagicMock:
    return MagicMock()


@pytest.fixture
def poller(cloudformation: MagicMock) -> StackPoller:
    return StackPoller(cloudformation, max_attempts=60, event_limit=20)


class TestPollStackStatus:
    """Describe-and-classify behavior."""

    def test_parses_stack_description(self, poller, cloudformation):
        cloudformation.describe_stacks.return_value = {
            "Stacks": [
                {
                    "StackId": STACK_ARN,
                    "StackName": "tenant-t1-dynamodb",
                    "StackStatus": "CREATE_COMPLETE",
                    "StackStatusReason": "done",
                    "CreationTime": CREATED,
                    "Outputs": [
                        {
                            "OutputKey": "TenantTableName",
                            "OutputValue": "tenant-t1-admin-private-dev",
                            "Description": "Name of the created DynamoDB table",
                            "ExportName": "tenant-t1-dynamodb-TenantTableName",
                        },
                        {"OutputKey": "TenantTableArn", "OutputValue": "arn:table"},
                    ],
                    "Parameters": [{"ParameterKey": "Env", "ParameterValue": "dev"}],
                }
            ]
        }

        result = poller.poll_stack_status(STACK_ARN, "t1")

        cloudformation.describe_stacks.assert_called_once_with(StackName=STACK_ARN)
        assert result.stack_id == STACK_ARN
        assert result.stack_name == "tenant-t1-dynamodb"
        assert result.status == "CREATE_COMPLETE"
        assert result.status_reason == "done"
        assert result.creation_time == CREATED
        assert result.is_complete
        assert result.outputs["TenantTableName"] == {
            "value": "tenant-t1-admin-private-dev",
            "description": "Name of the created DynamoDB table",
            "exportName": "tenant-t1-dynamodb-TenantTableName",
        }
        assert result.outputs["TenantTableArn"]["description"] is None
        assert result.parameters == {"Env": "dev"}

    def test_stack_without_outputs(self, poller, cloudformation):
        cloudformation.describe_stacks.return_value = {
            "Stacks": [
                {
                    "StackId": STACK_ARN,
                    "StackName": "tenant-t1-dynamodb",
                    "StackStatus": "CREATE_IN_PROGRESS",
                }
            ]
        }

        result = poller.poll_stack_status(STACK_ARN, "t1")

        assert result.is_in_progress
        assert result.outputs == {}
        assert result.parameters == {}
        assert result.status_reason is None

    def test_empty_describe_raises_stack_not_found(self, poller, cloudformation):
        cloudformation.describe_stacks.return_value = {"Stacks": []}

        with pytest.raises(StackNotFoundError) as exc_info:
            poller.poll_stack_status(STACK_ARN, "t1")

        assert exc_info.value.stack_id == STACK_ARN
        assert exc_info.value.error_type == "StackNotFound"
        assert exc_info.value.retryable is False

    def test_missing_stack_validation_error_raises_stack_not_found(self, poller, cloudformation):
        cloudformation.describe_stacks.side_effect = _validation_error(
            "Stack with id tenant-t1-dynamodb does not exist"
        )

        with pytest.raises(StackNotFoundError):
            poller.poll_stack_status("tenant-t1-dynamodb", "t1")

    def test_other_client_errors_propagate_unchanged(self, poller, cloudformation):
        throttled = ClientError(
            {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
            "DescribeStacks",
        )
        cloudformation.describe_stacks.side_effect = throttled

        with pytest.raises(ClientError) as exc_info:
            poller.poll_stack_status(STACK_ARN, "t1")

        assert exc_info.value is throttled

    def test_poller_does_not_retry(self, poller, cloudformation):
        cloudformation.describe_stacks.side_effect = EndpointConnectionError(
            endpoint_url="https://cloudformation.us-east-1.amazonaws.com"
        )

        with pytest.raises(EndpointConnectionError):
            poller.poll_stack_status(STACK_ARN, "t1")

        assert cloudformation.describe_stacks.call_count == 1


class TestGetStackEvents:
    """Best-effort diagnostic event retrieval."""

    def test_returns_most_recent_events_up_to_limit(self, cloudformation):
        cloudformation.describe_stack_events.return_value = {
            "StackEvents": [_stack_event(i) for i in range(30)]
        }
        poller = StackPoller(cloudformation, event_limit=20)

        events = poller.get_stack_events(STACK_ARN, "t1")

        assert len(events) == 20
        assert events[0].logical_resource_id == "Resource0"
        assert events[0].to_dict() == {
            "timestamp": "2025-09-28T12:00:00+00:00",
            "logicalResourceId": "Resource0",
            "physicalResourceId": "physical-0",
            "resourceType": "AWS::DynamoDB::Table",
            "resourceStatus": "CREATE_FAILED",
            "resourceStatusReason": "reason 0",
        }

    def test_failure_returns_empty_list(self, poller, cloudformation):
        cloudformation.describe_stack_events.side_effect = RuntimeError("boom")

        assert poller.get_stack_events(STACK_ARN, "t1") == []

    def test_client_error_returns_empty_list(self, poller, cloudformation):
        cloudformation.describe_stack_events.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "nope"}},
            "DescribeStackEvents",
        )

        assert poller.get_stack_events(STACK_ARN, "t1") == []


class TestPollerDecision:
    """The bound decision uses the poller's configured limit."""

    def test_uses_configured_max_attempts(self, cloudformation):
        poller = StackPoller(cloudformation, max_attempts=3)

        assert poller.should_continue_polling("CREATE_IN_PROGRESS", 2).should_continue
        assert (
            poller.should_continue_polling("CREATE_IN_PROGRESS", 3).outcome
            is PollingOutcome.TIMEOUT
        )
