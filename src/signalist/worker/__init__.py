"""Digest worker: lifecycle and scheduled jobs.

Usage:
    async with worker_lifespan(settings) as state:
        report = await state.orchestrator.run()
"""

from signalist.worker.lifespan import WorkerState, worker_lifespan
from signalist.worker.scheduler import create_scheduler, daily_digest_job

__all__ = ["WorkerState", "create_scheduler", "daily_digest_job", "worker_lifespan"]
