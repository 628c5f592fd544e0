import hashlib
from dataclasses import dataclass
from enum import StrEnum

from temporalio.common import Priority


class QueueKind(StrEnum):
    """Workflow workload types for queue routing."""

    TENANT = "tenant"  # Tenant infrastructure workflows (create, delete)


@dataclass(frozen=True)
class TemporalRoute:
    """Routing result for workflow execution."""

    namespace: str
    task_queue: str
    priority: Priority | None = None


def _stable_shard(key: str, shards: int) -> int:
    """Compute stable shard from key using SHA256 (not Python hash())."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % max(1, shards)


def task_queue_name(prefix: str, kind: QueueKind, shard: int) -> str:
    """Generate task queue name: {prefix}.{kind}.{shard:02d}"""
    return f"{prefix}.{kind}.{shard:02d}"


def route_for_tenant(
    *,
    tenant_id: str,
    namespace: str,
    prefix: str,
    shards: int,
    kind: QueueKind = QueueKind.TENANT,
    fairness_weight: int = 1,
) -> TemporalRoute:
    """
    Get routing info for a tenant-scoped workflow.

    Args:
        tenant_id: Tenant identifier
        namespace: Temporal namespace
        prefix: Queue name prefix (e.g., "tenant-infra")
        shards: Number of queue shards
        kind: Workload type for queue selection
        fairness_weight: Priority weight (higher = more capacity)

    Returns:
        TemporalRoute with task_queue and fairness priority
    """
    shard = _stable_shard(tenant_id, shards)
    tq = task_queue_name(prefix, kind, shard)

    # Task Queue Fairness uses Priority.fairness_key / fairness_weight
    priority = Priority(fairness_key=tenant_id, fairness_weight=fairness_weight)

    return TemporalRoute(namespace=namespace, task_queue=tq, priority=priority)


def all_tenant_queues(prefix: str, shards: int) -> list[str]:
    """Every tenant task queue a worker fleet must poll."""
    return [task_queue_name(prefix, QueueKind.TENANT, shard) for shard in range(max(1, shards))]
