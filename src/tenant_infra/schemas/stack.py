"""CloudFormation stack observations and polling decisions.

Status vocabulary is classified by static tables. Anything CloudFormation
reports that is not listed here classifies as UNKNOWN, which stops polling.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

from src.tenant_infra.models.enums import PollingOutcome, StackStatusClass

COMPLETE_STATUSES: Final[frozenset[str]] = frozenset(
    {
        "CREATE_COMPLETE",
        "UPDATE_COMPLETE",
        "DELETE_COMPLETE",
    }
)

FAILED_STATUSES: Final[frozenset[str]] = frozenset(
    {
        "CREATE_FAILED",
        "ROLLBACK_COMPLETE",
        "ROLLBACK_FAILED",
        "DELETE_FAILED",
        "UPDATE_ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
    }
)

IN_PROGRESS_STATUSES: Final[frozenset[str]] = frozenset(
    {
        "CREATE_IN_PROGRESS",
        "UPDATE_IN_PROGRESS",
        "DELETE_IN_PROGRESS",
        "ROLLBACK_IN_PROGRESS",
        "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_ROLLBACK_IN_PROGRESS",
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
    }
)


def classify_stack_status(status: str | None) -> StackStatusClass:
    """Map a raw stack status string onto the closed classification."""
    if status in COMPLETE_STATUSES:
        return StackStatusClass.COMPLETE
    if status in FAILED_STATUSES:
        return StackStatusClass.FAILED
    if status in IN_PROGRESS_STATUSES:
        return StackStatusClass.IN_PROGRESS
    return StackStatusClass.UNKNOWN


@dataclass(frozen=True)
class StackPollResult:
    """One observation of a stack, taken by a single describe call."""

    stack_id: str
    stack_name: str
    status: str
    status_reason: str | None = None
    creation_time: datetime | None = None
    last_updated_time: datetime | None = None
    outputs: dict[str, dict[str, str | None]] = field(default_factory=dict)
    parameters: dict[str, str] = field(default_factory=dict)
    declared_class: StackStatusClass | None = field(default=None, repr=False)

    @property
    def classification(self) -> StackStatusClass:
        if self.declared_class is not None:
            return self.declared_class
        return classify_stack_status(self.status)

    @property
    def is_complete(self) -> bool:
        return self.classification is StackStatusClass.COMPLETE

    @property
    def is_failed(self) -> bool:
        return self.classification is StackStatusClass.FAILED

    @property
    def is_in_progress(self) -> bool:
        return self.classification is StackStatusClass.IN_PROGRESS

    @classmethod
    def synthesized(cls, status: str, status_reason: str | None = None) -> "StackPollResult":
        """Completed result for tenants without a stack (public tier).

        The status string is recorded as reported; the classification is
        always COMPLETE since there is nothing left to poll.
        """
        return cls(
            stack_id="",
            stack_name="",
            status=status,
            status_reason=status_reason,
            declared_class=StackStatusClass.COMPLETE,
        )


@dataclass(frozen=True)
class StackEvent:
    """A single stack event, used for failure diagnostics."""

    timestamp: datetime | None
    logical_resource_id: str | None
    physical_resource_id: str | None
    resource_type: str | None
    resource_status: str | None
    resource_status_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "logicalResourceId": self.logical_resource_id,
            "physicalResourceId": self.physical_resource_id,
            "resourceType": self.resource_type,
            "resourceStatus": self.resource_status,
            "resourceStatusReason": self.resource_status_reason,
        }


@dataclass(frozen=True)
class PollingDecision:
    """Outcome of one polling iteration."""

    outcome: PollingOutcome
    reason: str

    @property
    def should_continue(self) -> bool:
        return self.outcome is PollingOutcome.CONTINUE

    @property
    def final_status(self) -> str:
        if self.outcome is PollingOutcome.CONTINUE:
            return "IN_PROGRESS"
        return self.outcome.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "shouldContinue": self.should_continue,
            "reason": self.reason,
            "finalStatus": self.final_status,
        }
