"""Job scheduler for the daily digest."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from signalist.core.logging import get_logger
from signalist.storage.redis import publish_digest_report

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from signalist.processing.digest.models import DigestReport
    from signalist.processing.digest.orchestrator import DigestOrchestrator

logger = get_logger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Create a new scheduler instance."""
    return AsyncIOScheduler(timezone="UTC")


async def daily_digest_job(
    orchestrator: DigestOrchestrator,
    redis: Redis,
) -> DigestReport | None:
    """Run the daily digest and publish its report."""
    if orchestrator.is_running:
        logger.warning("Digest run already in progress, skipping")
        return None

    try:
        report = await orchestrator.run()
    except Exception:
        logger.exception("Daily digest job failed")
        return None

    logger.info(
        "Daily digest finished",
        run_id=report.run_id,
        processed=report.processed,
        delivered=report.delivered,
        failed=report.failed,
        skipped=report.skipped,
    )

    try:
        await publish_digest_report(redis, report)
    except Exception as e:
        logger.warning("Failed to publish digest report", run_id=report.run_id, error=str(e))
    return report
