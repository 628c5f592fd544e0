"""Tests for the tenant infrastructure workflow (time-skipping test server)."""

from typing import Any

import pytest
from temporalio import activity
from temporalio.client import WorkflowFailureError
from temporalio.exceptions import ApplicationError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from src.tenant_infra.temporal.activities import InfrastructureStepInput
from src.tenant_infra.temporal.workflows import (
    TenantInfrastructureInput,
    TenantInfrastructureWorkflow,
)
from tests.helpers import STACK_ARN, launch_event

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

TASK_QUEUE = "test-tenant-infra"


class FakeSteps:
    """Activity doubles registered under the real activity names."""

    def __init__(self, poll_statuses: list[str], fail_with: str | None = None):
        self.poll_statuses = list(poll_statuses)
        self.fail_with = fail_with
        self.launched: list[str] = []
        self.polls = 0

    def activities(self) -> list[Any]:
        @activity.defn(name="create_infrastructure_activity")
        async def create(input: InfrastructureStepInput) -> dict[str, Any]:
            self.launched.append("CREATE")
            return self._envelope(input.event, "CREATE_IN_PROGRESS", attempts=0)

        @activity.defn(name="delete_infrastructure_activity")
        async def delete(input: InfrastructureStepInput) -> dict[str, Any]:
            self.launched.append("DELETE")
            return self._envelope(input.event, "DELETE_IN_PROGRESS", attempts=0)

        @activity.defn(name="poll_infrastructure_activity")
        async def poll(input: InfrastructureStepInput) -> dict[str, Any]:
            self.polls += 1
            if self.fail_with and not self.poll_statuses:
                raise ApplicationError(
                    "Polling timeout after 3 attempts",
                    {"result": {"errorType": self.fail_with}},
                    type=self.fail_with,
                    non_retryable=True,
                )
            status = self.poll_statuses.pop(0)
            attempts = input.event["metadata"]["attempts"] + 1
            return self._envelope(input.event, status, attempts=attempts)

        return [create, delete, poll]

    @staticmethod
    def _envelope(event: dict[str, Any], status: str, *, attempts: int) -> dict[str, Any]:
        done = status.endswith("_COMPLETE")
        return {
            **event,
            "status": "COMPLETE" if done else "IN_PROGRESS",
            "infrastructure": {"stackId": STACK_ARN, "status": status},
            "metadata": {"attempts": attempts},
            "result": {"success": True},
        }


async def _run(env: WorkflowEnvironment, steps: FakeSteps, event: dict[str, Any]):
    async with Worker(
        env.client,
        task_queue=TASK_QUEUE,
        workflows=[TenantInfrastructureWorkflow],
        activities=steps.activities(),
    ):
        handle = await env.client.start_workflow(
            TenantInfrastructureWorkflow.run,
            TenantInfrastructureInput(event=event, poll_interval_seconds=30),
            id=f"tenant-infra-{event['tenantId']}",
            task_queue=TASK_QUEUE,
        )
        result = await handle.result()
        return result, await handle.query(TenantInfrastructureWorkflow.status)


class TestTenantInfrastructureWorkflow:
    """Launch, poll while IN_PROGRESS, stop on COMPLETE or failure."""

    async def test_create_polls_until_complete(self) -> None:
        steps = FakeSteps(["CREATE_IN_PROGRESS", "CREATE_IN_PROGRESS", "CREATE_COMPLETE"])

        async with await WorkflowEnvironment.start_time_skipping() as env:
            result, status = await _run(env, steps, launch_event("t1"))

        assert result["status"] == "COMPLETE"
        assert result["metadata"]["attempts"] == 3
        assert steps.launched == ["CREATE"]
        assert steps.polls == 3
        assert status.status == "COMPLETE"
        assert status.attempts == 3
        assert status.history == [
            "CREATE_IN_PROGRESS",
            "CREATE_IN_PROGRESS",
            "CREATE_IN_PROGRESS",
            "CREATE_COMPLETE",
        ]

    async def test_delete_uses_delete_step(self) -> None:
        steps = FakeSteps(["DELETE_COMPLETE"])

        async with await WorkflowEnvironment.start_time_skipping() as env:
            result, status = await _run(env, steps, launch_event("t1", operation="DELETE"))

        assert steps.launched == ["DELETE"]
        assert result["infrastructure"]["status"] == "DELETE_COMPLETE"
        assert status.operation == "DELETE"

    async def test_terminal_poll_failure_fails_workflow(self) -> None:
        steps = FakeSteps(["CREATE_IN_PROGRESS", "CREATE_IN_PROGRESS"], fail_with="PollingTimeout")

        async with await WorkflowEnvironment.start_time_skipping() as env:
            with pytest.raises(WorkflowFailureError) as exc_info:
                await _run(env, steps, launch_event("t1"))

        activity_error = exc_info.value.cause
        assert isinstance(activity_error.cause, ApplicationError)
        assert activity_error.cause.type == "PollingTimeout"
        # Non-retryable: the failing poll ran exactly once
        assert steps.polls == 3
