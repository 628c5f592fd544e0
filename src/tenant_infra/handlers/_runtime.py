"""Shared Lambda entry-point plumbing."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from src.tenant_infra.core.config import get_settings
from src.tenant_infra.core.logging import (
    bind_invocation_context,
    clear_invocation_context,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)

StepCall = Callable[[dict[str, Any], str | None], Awaitable[dict[str, Any]]]

_logging_configured = False


def _ensure_logging() -> None:
    global _logging_configured
    if not _logging_configured:
        setup_logging(get_settings().debug)
        _logging_configured = True


def run_step(step: StepCall, event: dict[str, Any], context: Any, name: str) -> dict[str, Any]:
    """Run one async workflow step inside a Lambda invocation.

    InfrastructureStepError propagates unchanged; Step Functions surfaces its
    message (the JSON envelope) as the error cause.
    """
    _ensure_logging()
    request_id = getattr(context, "aws_request_id", None)
    tenant_id = event.get("tenantId") if isinstance(event, dict) else None
    bind_invocation_context(
        request_id,
        function_name=getattr(context, "function_name", None) or name,
        tenant_id=tenant_id,
    )
    try:
        logger.info("Lambda invoked", step=name)
        return asyncio.run(step(event, request_id))
    finally:
        clear_invocation_context()
