"""Shared workflow step utilities."""

from datetime import timedelta

from temporalio.common import RetryPolicy

# Transient AWS failures (throttling, network) arrive as retryable
# ApplicationErrors; terminal ones are marked non_retryable by the activity.
STEP_RETRY = RetryPolicy(
    maximum_attempts=5,
    initial_interval=timedelta(seconds=2),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(seconds=30),
)


def launch_activity_opts() -> dict[str, object]:
    """Options for the create/delete step (role assumption plus one AWS call)."""
    return {
        "start_to_close_timeout": timedelta(seconds=60),
        "retry_policy": STEP_RETRY,
    }


def poll_activity_opts() -> dict[str, object]:
    """Options for one poll (role assumption, describe, registry write)."""
    return {
        "start_to_close_timeout": timedelta(seconds=60),
        "retry_policy": STEP_RETRY,
    }
