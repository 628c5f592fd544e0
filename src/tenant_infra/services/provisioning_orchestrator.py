"""Provisioning orchestrator: one polling invocation of the infrastructure workflow.

The orchestrator holds no state between invocations. The workflow engine passes
the previous envelope back in, waits between calls, and stops when a call
returns COMPLETE or raises.

Order within one invocation is fixed: assume role, describe stack, write the
registry. Each step needs the result of the previous one.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from src.tenant_infra.core.config import Settings, get_settings
from src.tenant_infra.core.exceptions import (
    POLLING_TIMEOUT_ERROR,
    STACK_FAILED_ERROR,
    UNKNOWN_STACK_STATUS_ERROR,
    InfrastructureStepError,
    InvalidInputError,
)
from src.tenant_infra.core.logging import get_logger
from src.tenant_infra.models import (
    EnvelopeStatus,
    InfrastructureOperation,
    PollingOutcome,
    SubscriptionTier,
    utc_now_iso,
)
from src.tenant_infra.repositories import TenantRegistryRepository
from src.tenant_infra.schemas import InfrastructureRequest, StackPollResult, parse_request
from src.tenant_infra.schemas.stack import PollingDecision
from src.tenant_infra.services.credential_broker import CrossAccountCredentialBroker
from src.tenant_infra.services.envelopes import StepTimer, build_envelope, step_failure
from src.tenant_infra.services.stack_poller import StackPoller, should_continue_polling

logger = get_logger(__name__)

POLL_OPERATION = "POLL_INFRASTRUCTURE"

PollerFactory = Callable[[Any], StackPoller]


class ProvisioningOrchestrator:
    """Runs one poll of a tenant's infrastructure and reconciles the registry."""

    def __init__(
        self,
        registry: TenantRegistryRepository | None = None,
        broker: CrossAccountCredentialBroker | None = None,
        poller_factory: PollerFactory | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or TenantRegistryRepository()
        self.broker = broker or CrossAccountCredentialBroker(settings=self.settings)
        self.poller_factory = poller_factory or self._default_poller

    def _default_poller(self, cloudformation_client: Any) -> StackPoller:
        return StackPoller(
            cloudformation_client,
            max_attempts=self.settings.max_poll_attempts,
            event_limit=self.settings.stack_event_limit,
        )

    def _poller_for(self, credentials: Any, region: str | None) -> StackPoller:
        # Client construction loads service models from disk
        cloudformation = self.broker.client_for(credentials, "cloudformation", region)
        return self.poller_factory(cloudformation)

    async def poll_infrastructure(
        self, event: dict[str, Any], request_id: str | None = None
    ) -> dict[str, Any]:
        """
        Poll a tenant's infrastructure once.

        Args:
            event: Inbound payload (or the previous envelope)
            request_id: Invocation id, echoed into ``metadata.requestId``

        Returns:
            IN_PROGRESS or COMPLETE envelope

        Raises:
            InfrastructureStepError: On any failure; the message is the JSON envelope
        """
        timer = StepTimer()
        source = event if isinstance(event, dict) else {}
        try:
            request = parse_request(event)
            tenant_id, tier = request.require_tenant()
            logger.info(
                "Polling tenant infrastructure",
                tenant_id=tenant_id,
                subscription_tier=tier.value,
                operation=request.operation.value,
            )
            if tier is SubscriptionTier.PUBLIC:
                return await self._complete_public(source, request, request_id, timer)
            return await self._poll_private(source, request, request_id, timer)
        except InfrastructureStepError:
            raise
        except Exception as e:
            logger.error(
                "Infrastructure polling failed",
                tenant_id=source.get("tenantId"),
                error=str(e),
                error_type=type(e).__name__,
                execution_time_ms=timer.elapsed_ms(),
            )
            raise step_failure(source, e, operation=POLL_OPERATION, timer=timer) from e

    async def _complete_public(
        self,
        event: dict[str, Any],
        request: InfrastructureRequest,
        request_id: str | None,
        timer: StepTimer,
    ) -> dict[str, Any]:
        """Shared-table tenants have no stack: complete immediately, zero polls."""
        tenant_id = request.tenant_id
        operation = request.operation
        verb = operation.value.lower()
        status = request.infrastructure.status or (
            "DELETE_COMPLETE"
            if operation is InfrastructureOperation.DELETE
            else "CREATE_COMPLETE"
        )
        reason = (
            request.infrastructure.status_reason
            or f"Public tenant {verb} operation completed"
        )

        await asyncio.to_thread(
            self.registry.update_tenant_infrastructure_status,
            tenant_id,
            StackPollResult.synthesized(status, reason),
            operation,
        )

        done = "deleted" if operation is InfrastructureOperation.DELETE else "ready"
        envelope = build_envelope(
            event,
            status=EnvelopeStatus.COMPLETE,
            infrastructure={
                **self._infrastructure_echo(request),
                "status": status,
                "statusReason": reason,
                "completedAt": utc_now_iso(),
            },
            metadata=self._metadata(event, request_id, attempts=1),
            result={
                "success": True,
                "operation": POLL_OPERATION,
                "status": "COMPLETED",
                "message": f"Public tenant infrastructure {done} (no CloudFormation stack needed)",
                "executionTime": timer.elapsed_ms(),
            },
        )
        logger.info(
            "Public tenant completed without polling",
            tenant_id=tenant_id,
            operation=operation.value,
            stack_status=status,
        )
        return envelope

    async def _poll_private(
        self,
        event: dict[str, Any],
        request: InfrastructureRequest,
        request_id: str | None,
        timer: StepTimer,
    ) -> dict[str, Any]:
        tenant_id = request.tenant_id
        operation = request.operation
        infrastructure = request.infrastructure
        stack_id = infrastructure.stack_id
        if not stack_id:
            raise InvalidInputError(
                "Invalid input: stackId is required for private tenant CloudFormation polling"
            )
        if not infrastructure.target_account_id:
            raise InvalidInputError(
                "Invalid input: infrastructure.targetAccountId is required for private tenants"
            )

        attempts = request.metadata.attempts + 1
        logger.info(
            "Processing infrastructure status polling request",
            tenant_id=tenant_id,
            stack_id=stack_id,
            attempts=attempts,
            max_attempts=self.settings.max_poll_attempts,
        )
        await asyncio.to_thread(self.registry.record_polling_attempt, tenant_id, attempts)

        credentials = await asyncio.to_thread(
            self.broker.assume_tenant_role, infrastructure.target_account_id, tenant_id
        )
        poller = await asyncio.to_thread(self._poller_for, credentials, request.region)

        poll_result = await asyncio.to_thread(poller.poll_stack_status, stack_id, tenant_id)
        decision = should_continue_polling(
            poll_result.status, attempts, self.settings.max_poll_attempts
        )
        logger.info(
            "Evaluated polling decision",
            tenant_id=tenant_id,
            stack_id=stack_id,
            stack_status=poll_result.status,
            outcome=decision.outcome.value,
            attempts=attempts,
        )

        await asyncio.to_thread(
            self.registry.update_tenant_infrastructure_status,
            tenant_id,
            poll_result,
            operation,
        )

        echo = self._infrastructure_echo(request)
        metadata = self._metadata(event, request_id, attempts=attempts, decision=decision)

        if decision.outcome is PollingOutcome.CONTINUE:
            logger.info(
                "Stack still in progress",
                tenant_id=tenant_id,
                stack_id=stack_id,
                attempts=attempts,
                next_poll_in_seconds=self.settings.poll_interval_seconds,
            )
            return build_envelope(
                event,
                status=EnvelopeStatus.IN_PROGRESS,
                infrastructure={
                    **echo,
                    "status": poll_result.status,
                    "statusReason": poll_result.status_reason,
                    "lastPolledAt": utc_now_iso(),
                },
                metadata=metadata,
                result={
                    "success": True,
                    "operation": POLL_OPERATION,
                    "status": "IN_PROGRESS",
                    "executionTime": timer.elapsed_ms(),
                },
            )

        if decision.outcome is PollingOutcome.COMPLETE:
            logger.info(
                "Stack completed successfully",
                tenant_id=tenant_id,
                stack_id=stack_id,
                attempts=attempts,
                outputs=sorted(poll_result.outputs),
            )
            return build_envelope(
                event,
                status=EnvelopeStatus.COMPLETE,
                infrastructure={
                    **echo,
                    "status": poll_result.status,
                    "statusReason": poll_result.status_reason,
                    "outputs": poll_result.outputs,
                    "completedAt": utc_now_iso(),
                },
                metadata=metadata,
                result={
                    "success": True,
                    "operation": POLL_OPERATION,
                    "status": "COMPLETED",
                    "outputs": poll_result.outputs,
                    "executionTime": timer.elapsed_ms(),
                },
            )

        if decision.outcome is PollingOutcome.TIMEOUT:
            await asyncio.to_thread(self.registry.record_polling_timeout, tenant_id, attempts)
            logger.warning(
                "Polling timeout reached",
                tenant_id=tenant_id,
                stack_id=stack_id,
                attempts=attempts,
                max_attempts=self.settings.max_poll_attempts,
            )
            raise InfrastructureStepError(
                build_envelope(
                    event,
                    status=EnvelopeStatus.FAILED,
                    infrastructure={
                        **echo,
                        "status": "TIMEOUT",
                        "statusReason": "Polling timeout reached",
                        "lastObservedStatus": poll_result.status,
                    },
                    metadata=metadata,
                    result={
                        "success": False,
                        "operation": POLL_OPERATION,
                        "status": "TIMEOUT",
                        "error": f"Polling timeout after {attempts} attempts",
                        "errorType": POLLING_TIMEOUT_ERROR,
                        "retryable": False,
                        "executionTime": timer.elapsed_ms(),
                    },
                )
            )

        # FAILED or UNKNOWN
        stack_events = await asyncio.to_thread(poller.get_stack_events, stack_id, tenant_id)
        events = [e.to_dict() for e in stack_events[: self.settings.failure_event_count]]
        error_type = (
            STACK_FAILED_ERROR
            if decision.outcome is PollingOutcome.FAILED
            else UNKNOWN_STACK_STATUS_ERROR
        )
        logger.error(
            "Stack failed",
            tenant_id=tenant_id,
            stack_id=stack_id,
            stack_status=poll_result.status,
            status_reason=poll_result.status_reason,
            error_type=error_type,
            attempts=attempts,
        )
        raise InfrastructureStepError(
            build_envelope(
                event,
                status=EnvelopeStatus.FAILED,
                infrastructure={
                    **echo,
                    "status": poll_result.status,
                    "statusReason": poll_result.status_reason,
                    "events": events,
                },
                metadata=metadata,
                result={
                    "success": False,
                    "operation": POLL_OPERATION,
                    "status": "FAILED",
                    "error": f"Stack failed with status: {poll_result.status}",
                    "errorType": error_type,
                    "retryable": False,
                    "executionTime": timer.elapsed_ms(),
                },
            )
        )

    @staticmethod
    def _infrastructure_echo(request: InfrastructureRequest) -> dict[str, Any]:
        return request.infrastructure.model_dump(by_alias=True, exclude_none=True)

    @staticmethod
    def _metadata(
        event: dict[str, Any],
        request_id: str | None,
        *,
        attempts: int,
        decision: PollingDecision | None = None,
    ) -> dict[str, Any]:
        metadata = dict(event.get("metadata") or {})
        if request_id:
            metadata["requestId"] = request_id
        metadata["attempts"] = attempts
        if decision is not None:
            metadata["pollingDecision"] = decision.to_dict()
        return metadata
