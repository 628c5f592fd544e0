"""
Temporal Worker - polls the tenant infrastructure queues.

Run with:
    python -m src.tenant_infra.temporal.worker
    python -m src.tenant_infra.temporal.worker --health-port 8081
"""

import argparse
import asyncio
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.tenant_infra.core.config import get_settings
from src.tenant_infra.core.logging import get_logger, setup_logging
from src.tenant_infra.temporal.activities import (
    create_infrastructure_activity,
    delete_infrastructure_activity,
    poll_infrastructure_activity,
)
from src.tenant_infra.temporal.routing import all_tenant_queues
from src.tenant_infra.temporal.workflows import TenantInfrastructureWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001

TENANT_ACTIVITIES = [
    create_infrastructure_activity,
    delete_infrastructure_activity,
    poll_infrastructure_activity,
]


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Tenant infrastructure worker")
    parser.add_argument(
        "--health-port",
        type=int,
        default=WORKER_HEALTH_PORT,
        help=f"Port for the health probe server (default: {WORKER_HEALTH_PORT})",
    )
    return parser.parse_args()


def create_worker(
    client: Client,
    task_queue: str,
    workflows: Sequence[type],
    activities: Sequence[object],  # type: ignore[type-arg]
    *,
    max_concurrent_activities: int = 20,
    max_concurrent_workflow_tasks: int = 20,
) -> Worker:
    """Create a worker with tuned settings.

    Args:
        client: Temporal client
        task_queue: Task queue name
        workflows: List of workflow classes
        activities: List of activity functions
        max_concurrent_activities: Max concurrent activity executions
        max_concurrent_workflow_tasks: Max concurrent workflow task executions

    Returns:
        Configured Worker instance
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=list(workflows),
        activities=list(activities),  # type: ignore[arg-type]
        max_concurrent_activities=max_concurrent_activities,
        max_concurrent_workflow_tasks=max_concurrent_workflow_tasks,
    )


async def run_tenant_workers(client: Client, task_queues: list[str]) -> None:
    """Run one worker per tenant queue shard."""
    workers = [
        create_worker(
            client,
            tq,
            workflows=[TenantInfrastructureWorkflow],
            activities=TENANT_ACTIVITIES,
        )
        for tq in task_queues
    ]
    for tq in task_queues:
        logger.info("Created tenant worker", task_queue=tq)

    logger.info("Starting tenant workers", count=len(workers))
    await asyncio.gather(*(w.run() for w in workers))


def build_health_app(task_queues: list[str]) -> FastAPI:
    """Lightweight app for liveness/readiness probes."""
    health_app = FastAPI(title="Tenant Infrastructure Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str | list[str]]:
        return {
            "status": "healthy",
            "service": "tenant-infra-worker",
            "task_queues": task_queues,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return health_app


async def run_health_server(task_queues: list[str], port: int = WORKER_HEALTH_PORT) -> None:
    """Serve the health app for K8s probes."""
    config = uvicorn.Config(
        build_health_app(task_queues),
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info("Starting health server", port=port)
    await server.serve()


async def main() -> None:
    """Main entry point for the Temporal worker."""
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace,
    )

    task_queues = all_tenant_queues(settings.temporal_queue_prefix, settings.temporal_queue_shards)
    logger.info("Polling task queues", task_queues=task_queues)

    health_task = asyncio.create_task(run_health_server(task_queues, args.health_port))
    await run_tenant_workers(client, task_queues)

    # Wait for health server to finish (should never happen)
    await health_task


if __name__ == "__main__":
    asyncio.run(main())
