"""Envelope construction for workflow step results.

Every step echoes the inbound event and adds ``status``, ``infrastructure``,
``metadata`` and ``result``. A normal return tells the workflow engine to
reschedule (IN_PROGRESS) or stop (COMPLETE); failures are raised as
InfrastructureStepError carrying the same shape with ``result.success`` false.
"""

import time
from typing import Any

from src.tenant_infra.core.exceptions import InfrastructureStepError, classify_exception
from src.tenant_infra.models.enums import EnvelopeStatus


class StepTimer:
    """Wall-clock timer for ``result.executionTime`` (milliseconds)."""

    def __init__(self) -> None:
        self._started = time.monotonic()

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)


def build_envelope(
    event: dict[str, Any],
    *,
    status: EnvelopeStatus,
    result: dict[str, Any],
    infrastructure: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    envelope = {**event, "status": status.value}
    if infrastructure is not None:
        envelope["infrastructure"] = infrastructure
    if metadata is not None:
        envelope["metadata"] = metadata
    envelope["result"] = result
    return envelope


def step_failure(
    event: dict[str, Any],
    exc: BaseException,
    *,
    operation: str,
    timer: StepTimer,
) -> InfrastructureStepError:
    """Wrap an unanticipated or validation error into a failure envelope."""
    error_type, retryable = classify_exception(exc)
    envelope = build_envelope(
        event,
        status=EnvelopeStatus.FAILED,
        result={
            "success": False,
            "operation": operation,
            "error": str(exc),
            "errorType": error_type,
            "retryable": retryable,
            "executionTime": timer.elapsed_ms(),
        },
    )
    return InfrastructureStepError(envelope)
