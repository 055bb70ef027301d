"""Daily digest orchestration.

One pass over every account:

    LOAD_ACCOUNTS -> per account (bounded worker pool):
        RESOLVE_WATCHLIST -> scoped news | shared general news
        -> SUMMARIZE -> queued for delivery | failed
    -> DELIVER_ALL (one attempt per summarized account, concurrent)
    -> DigestReport

Any exception inside an account's pipeline becomes that account's outcome;
the run itself only raises when accounts cannot be enumerated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING

from signalist.core.constants import DEFAULT_DIGEST_WORKERS, DEFAULT_EXTERNAL_TIMEOUT_SECONDS
from signalist.core.exceptions import DigestRunError
from signalist.core.logging import get_logger
from signalist.processing.digest.models import (
    AccountOutcome,
    DigestReport,
    DigestRun,
    PendingDelivery,
)

if TYPE_CHECKING:
    from signalist.processing.news.aggregator import NewsAggregator
    from signalist.processing.watchlist.models import Account
    from signalist.processing.watchlist.store import WatchlistStore
    from signalist.providers.base import AccountLookup, Delivery, Summarizer

logger = get_logger(__name__)


def _describe(e: BaseException) -> str:
    return str(e) or type(e).__name__


class DigestOrchestrator:
    """Runs the daily digest across all accounts.

    Usage:
        orchestrator = DigestOrchestrator(directory, store, aggregator, summarizer, delivery)
        report = await orchestrator.run()
    """

    def __init__(
        self,
        accounts: AccountLookup,
        store: WatchlistStore,
        aggregator: NewsAggregator,
        summarizer: Summarizer,
        delivery: Delivery,
        *,
        max_workers: int = DEFAULT_DIGEST_WORKERS,
        timeout_seconds: float = DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
        recipients_allowlist: Sequence[str] = (),
    ) -> None:
        self._accounts = accounts
        self._store = store
        self._aggregator = aggregator
        self._summarizer = summarizer
        self._delivery = delivery
        self._max_workers = max(1, max_workers)
        self._timeout = timeout_seconds
        self._allowlist = {e.strip().lower() for e in recipients_allowlist if e.strip()}
        self._cancel_event = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Stop scheduling new accounts; in-flight accounts still finish."""
        if self._running:
            logger.info("Digest run cancellation requested")
        self._cancel_event.set()

    async def wait_idle(self, timeout: float) -> bool:
        """Wait for an in-flight run to finish.

        Returns:
            False if a run is still going after the timeout
        """
        if self._idle.is_set():
            return True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def run(self) -> DigestReport:
        """Execute one digest run.

        Raises:
            DigestRunError: If the account list cannot be loaded
        """
        run = DigestRun()
        log = logger.bind(run_id=run.run_id)
        self._cancel_event.clear()
        self._idle.clear()
        self._running = True

        try:
            try:
                accounts = await self._accounts.list_accounts_for_digest()
            except Exception as e:
                log.error("Failed to load accounts for digest", error=_describe(e))
                raise DigestRunError("Unable to enumerate digest accounts") from e

            if not accounts:
                log.info("No accounts found for digest, nothing to do")
                return DigestReport.from_outcomes(run, [], processed=0)

            log.info("Digest run started", accounts=len(accounts), workers=self._max_workers)
            report = await self._run_accounts(run, accounts)
        finally:
            run.close()
            self._running = False
            self._idle.set()

        log.info(
            "Digest run complete",
            processed=report.processed,
            delivered=report.delivered,
            failed=report.failed,
            skipped=report.skipped,
            cancelled=report.cancelled,
        )
        return report

    async def _run_accounts(self, run: DigestRun, accounts: list[Account]) -> DigestReport:
        semaphore = asyncio.Semaphore(self._max_workers)
        cancelled = 0

        async def worker(account: Account) -> AccountOutcome | PendingDelivery:
            nonlocal cancelled
            async with semaphore:
                if self._cancel_event.is_set():
                    cancelled += 1
                    return AccountOutcome.skipped(account, "run cancelled")
                return await self._prepare(run, account)

        prepared = await asyncio.gather(*(worker(a) for a in accounts))

        pending = [p for p in prepared if isinstance(p, PendingDelivery)]
        delivered = await asyncio.gather(*(self._deliver(run, p) for p in pending))
        delivery_outcomes = dict(zip((p.account.id for p in pending), delivered))

        outcomes = [
            delivery_outcomes[p.account.id] if isinstance(p, PendingDelivery) else p
            for p in prepared
        ]
        return DigestReport.from_outcomes(
            run, outcomes, processed=len(accounts), cancelled=cancelled
        )

    async def _prepare(self, run: DigestRun, account: Account) -> AccountOutcome | PendingDelivery:
        """Resolve, fetch and summarize for one account."""
        log = logger.bind(run_id=run.run_id, account_id=account.id)

        if not account.email:
            log.debug("Account has no email address, skipping")
            return AccountOutcome.skipped(account, "no email address")
        if self._allowlist and account.email.lower() not in self._allowlist:
            log.debug("Account not in recipients allowlist, skipping")
            return AccountOutcome.skipped(account, "not in recipients allowlist")

        try:
            symbols = await self._store.list_symbols(account.id)
        except Exception as e:
            log.warning("Watchlist lookup failed", error=_describe(e))
            return AccountOutcome.failed(account, f"watchlist unavailable: {_describe(e)}")

        try:
            if symbols:
                news = await self._aggregator.get_symbol_news(symbols)
            else:
                news = await run.shared_general_news(self._aggregator.get_general_news)
        except Exception as e:
            log.warning("News fetch failed", symbols=symbols, error=_describe(e))
            return AccountOutcome.failed(account, f"news fetch failed: {_describe(e)}")

        try:
            # Outer bound; the summarizer applies its own timeout first
            body = await asyncio.wait_for(
                self._summarizer.summarize(news), timeout=self._timeout * 2
            )
        except TimeoutError:
            log.warning("Summarizer timed out")
            return AccountOutcome.failed(account, "summarizer timed out", news_count=len(news))
        except Exception as e:
            log.warning("Summarizer failed", error=_describe(e))
            return AccountOutcome.failed(
                account, f"summarizer failed: {_describe(e)}", news_count=len(news)
            )

        log.debug("Digest prepared", symbols=symbols, news_count=len(news))
        return PendingDelivery(account=account, body=body, news_count=len(news))

    async def _deliver(self, run: DigestRun, pending: PendingDelivery) -> AccountOutcome:
        """Single delivery attempt; no retry within a run."""
        account = pending.account
        log = logger.bind(run_id=run.run_id, account_id=account.id)

        try:
            ok = await asyncio.wait_for(
                self._delivery.deliver(account.email or "", run.context_date, pending.body),
                timeout=self._timeout,
            )
        except TimeoutError:
            log.warning("Delivery timed out")
            return AccountOutcome.failed(account, "delivery timed out", pending.news_count)
        except Exception as e:
            log.warning("Delivery failed", error=_describe(e))
            return AccountOutcome.failed(
                account, f"delivery failed: {_describe(e)}", pending.news_count
            )

        if not ok:
            log.warning("Delivery rejected")
            return AccountOutcome.failed(account, "delivery rejected", pending.news_count)

        log.info("Digest delivered", news_count=pending.news_count)
        return AccountOutcome.delivered(account, pending.news_count)
