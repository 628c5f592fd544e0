"""
Tenant Infrastructure Workflow.

Create or delete a tenant's infrastructure, then poll it to a terminal state.

Steps:
1. Launch - create (or delete) the public-table entry or the private stack
2. Poll - repeat every ``poll_interval_seconds`` while the step returns IN_PROGRESS

The poll activity owns the attempt counter and the timeout decision; the
workflow only sleeps and re-polls. Any terminal failure (timeout, stack
failure, access denied) is raised by an activity and fails the workflow.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from temporalio import workflow
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from src.tenant_infra.temporal.activities import (
        InfrastructureStepInput,
        TenantCtx,
        create_infrastructure_activity,
        delete_infrastructure_activity,
        poll_infrastructure_activity,
    )
    from src.tenant_infra.temporal.workflows._steps.common import (
        launch_activity_opts,
        poll_activity_opts,
    )


@dataclass
class TenantInfrastructureInput:
    event: dict[str, Any]
    poll_interval_seconds: int = 30


@dataclass
class TenantInfrastructureStatus:
    tenant_id: str
    operation: str
    status: str = "PENDING"
    attempts: int = 0
    infrastructure_status: str | None = None
    error: str | None = None
    history: list[str] = field(default_factory=list)


@workflow.defn
class TenantInfrastructureWorkflow:
    """
    Create or delete a tenant's infrastructure and wait for it to settle.

    Steps:
    1. Launch (create or delete, by ``event.operation``)
    2. Poll until COMPLETE; sleep between IN_PROGRESS polls

    One execution per tenant at a time (workflow id ``tenant-infra-{tenantId}``).
    """

    def __init__(self) -> None:
        self._status: TenantInfrastructureStatus | None = None

    @workflow.run
    async def run(self, input: TenantInfrastructureInput) -> dict[str, Any]:
        """
        Run the tenant infrastructure workflow.

        Args:
            input: Inbound payload and the polling interval

        Returns:
            The COMPLETE envelope from the final poll
        """
        ctx = TenantCtx.from_event(input.event)
        operation = str(input.event.get("operation") or "CREATE").upper()
        self._status = TenantInfrastructureStatus(tenant_id=ctx.tenant_id, operation=operation)

        launch = (
            delete_infrastructure_activity
            if operation == "DELETE"
            else create_infrastructure_activity
        )

        try:
            envelope: dict[str, Any] = await workflow.execute_activity(
                launch,
                InfrastructureStepInput(ctx=ctx, event=input.event),
                **launch_activity_opts(),
            )
            self._observe(envelope)
            workflow.logger.info(
                f"Infrastructure {operation.lower()} launched for tenant {ctx.tenant_id}"
            )

            while True:
                envelope = await workflow.execute_activity(
                    poll_infrastructure_activity,
                    InfrastructureStepInput(ctx=ctx, event=envelope),
                    **poll_activity_opts(),
                )
                self._observe(envelope)
                if envelope.get("status") != "IN_PROGRESS":
                    break
                await workflow.sleep(timedelta(seconds=input.poll_interval_seconds))

        except ActivityError as e:
            self._status.status = "FAILED"
            self._status.error = str(e.cause or e)
            workflow.logger.error(f"Tenant infrastructure {operation.lower()} failed: {e.cause}")
            raise

        workflow.logger.info(
            f"Tenant infrastructure {operation.lower()} complete: {ctx.tenant_id} "
            f"after {self._status.attempts} poll(s)"
        )
        return envelope

    @workflow.query
    def status(self) -> TenantInfrastructureStatus | None:
        return self._status

    def _observe(self, envelope: dict[str, Any]) -> None:
        assert self._status is not None
        infrastructure = envelope.get("infrastructure") or {}
        metadata = envelope.get("metadata") or {}
        self._status.status = envelope.get("status", self._status.status)
        self._status.attempts = metadata.get("attempts", self._status.attempts)
        self._status.infrastructure_status = infrastructure.get("status")
        if self._status.infrastructure_status:
            self._status.history.append(self._status.infrastructure_status)
