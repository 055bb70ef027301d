"""Worker lifecycle: infrastructure, digest pipeline and scheduled jobs."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from redis.asyncio import Redis

from signalist.core.constants import DIGEST_SHUTDOWN_GRACE_SECONDS
from signalist.core.events import MembershipSyncChannel, get_sync_channel
from signalist.core.exceptions import ConfigurationError
from signalist.core.logging import get_logger
from signalist.notifications.email import EmailDelivery
from signalist.processing.digest.orchestrator import DigestOrchestrator
from signalist.processing.digest.summarizer import NewsSummarizer
from signalist.processing.news.aggregator import NewsAggregator
from signalist.processing.watchlist.accounts import AccountDirectory
from signalist.processing.watchlist.store import WatchlistStore
from signalist.providers.finnhub.news import FinnhubNewsSource
from signalist.storage.database import Database, close_database, init_database
from signalist.storage.redis import close_redis, init_redis
from signalist.worker.scheduler import create_scheduler, daily_digest_job

if TYPE_CHECKING:
    from signalist.config import Settings

logger = get_logger(__name__)


@dataclass
class WorkerState:
    """Holds references to all running worker resources."""

    redis: Redis
    db: Database
    settings: Settings
    store: WatchlistStore
    sync_channel: MembershipSyncChannel
    summarizer: NewsSummarizer
    aggregator: NewsAggregator | None = None
    delivery: EmailDelivery | None = None
    orchestrator: DigestOrchestrator | None = None
    scheduler: AsyncIOScheduler | None = None
    trigger_fns: dict[str, Any] = field(default_factory=dict)


def _build_news_source(settings: Settings) -> FinnhubNewsSource | None:
    try:
        return FinnhubNewsSource.from_settings(settings)
    except ConfigurationError:
        if settings.digest_enabled:
            raise
        logger.info("No FINNHUB_API_KEY configured, news endpoints disabled")
        return None


def _build_delivery(settings: Settings) -> EmailDelivery | None:
    try:
        return EmailDelivery.from_settings(settings)
    except ConfigurationError:
        if settings.digest_enabled:
            raise
        logger.info("SMTP not configured, email delivery disabled")
        return None


def _validate_llm(settings: Settings) -> None:
    """Require a credential for the configured LLM provider when the digest runs."""
    if not settings.digest_enabled:
        return

    if settings.llm_provider == "anthropic":
        if settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY"):
            return
        raise ConfigurationError("ANTHROPIC_API_KEY is not configured")

    # OpenAI-compatible servers behind a base URL may not need a key
    if settings.openai_api_key or settings.openai_base_url or os.environ.get("OPENAI_API_KEY"):
        return
    raise ConfigurationError("OPENAI_API_KEY is not configured")


@asynccontextmanager
async def worker_lifespan(
    settings: Settings,
    *,
    start_scheduler: bool = True,
) -> AsyncIterator[WorkerState]:
    """Async context manager that starts/stops the digest worker.

    Configuration is validated before any connection is opened: with the
    digest enabled, a missing Finnhub key, mail sender or LLM credential
    raises ConfigurationError.
    """
    _validate_llm(settings)
    news_source = _build_news_source(settings)
    delivery = _build_delivery(settings)

    redis: Redis | None = None
    db_initialized = False
    scheduler: AsyncIOScheduler | None = None
    orchestrator: DigestOrchestrator | None = None
    trigger_fns: dict[str, Any] = {}

    try:
        # 1. Connect to Redis (digest reports, readiness)
        logger.debug("Connecting to Redis")
        redis = await init_redis(settings.redis_url)

        # 2. Connect to PostgreSQL; the watchlist cannot run without it
        logger.debug("Connecting to PostgreSQL")
        db = await init_database(settings.database_url)
        db_initialized = True

        # 3. Watchlist store wired to the process-wide sync channel
        sync_channel = get_sync_channel()
        accounts = AccountDirectory(db)
        store = WatchlistStore(db, accounts, sync_channel=sync_channel)

        # 4. News, summarizer and digest pipeline
        aggregator = NewsAggregator(news_source) if news_source else None
        summarizer = NewsSummarizer(timeout=settings.external_timeout_seconds)

        if aggregator and delivery:
            orchestrator = DigestOrchestrator(
                accounts,
                store,
                aggregator,
                summarizer,
                delivery,
                max_workers=settings.digest_workers,
                timeout_seconds=settings.external_timeout_seconds,
                recipients_allowlist=settings.digest_recipients_allowlist,
            )

        # 5. Scheduled jobs
        if settings.digest_enabled and orchestrator:
            trigger_fns["daily_digest"] = partial(daily_digest_job, orchestrator, redis)
            if start_scheduler:
                scheduler = create_scheduler()
                scheduler.add_job(
                    daily_digest_job,
                    CronTrigger(hour=settings.digest_cron_hour, minute=0, timezone="UTC"),
                    args=[orchestrator, redis],
                    id="daily_digest",
                    max_instances=1,
                    misfire_grace_time=None,
                )
                scheduler.start()

        logger.info(
            "Worker ready",
            llm_provider=settings.llm_provider,
            llm_model=settings.llm_model,
            news_enabled=aggregator is not None,
            email_enabled=delivery is not None,
            digest_enabled=orchestrator is not None and settings.digest_enabled,
            digest_cron_hour_utc=settings.digest_cron_hour,
        )

        yield WorkerState(
            redis=redis,
            db=db,
            settings=settings,
            store=store,
            sync_channel=sync_channel,
            summarizer=summarizer,
            aggregator=aggregator,
            delivery=delivery,
            orchestrator=orchestrator,
            scheduler=scheduler,
            trigger_fns=trigger_fns,
        )

    finally:
        logger.info("Shutting down worker...")

        if scheduler and scheduler.running:
            scheduler.shutdown(wait=False)
            logger.debug("Scheduler stopped")

        if orchestrator:
            orchestrator.cancel()
            if not await orchestrator.wait_idle(DIGEST_SHUTDOWN_GRACE_SECONDS):
                logger.warning(
                    "Digest run still in progress at shutdown",
                    grace_seconds=DIGEST_SHUTDOWN_GRACE_SECONDS,
                )

        if news_source:
            try:
                await news_source.close()
            except Exception as e:
                logger.error("Failed to close news source", error=str(e))

        if db_initialized:
            await close_database()
            logger.debug("PostgreSQL disconnected")

        if redis:
            await close_redis()
            logger.debug("Redis disconnected")

        logger.info("Worker shutdown complete")
