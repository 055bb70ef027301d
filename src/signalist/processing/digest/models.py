"""Data models for digest runs.

Each account's journey through fetch -> summarize -> deliver is captured as
an AccountOutcome value; the run collects them into a DigestReport.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from signalist.processing.news.models import NewsItem
from signalist.processing.watchlist.models import Account


class OutcomeStatus(StrEnum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


class AccountOutcome(BaseModel):
    """Terminal state of one account within a run."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    email: str | None = None
    status: OutcomeStatus
    reason: str | None = None
    news_count: int = 0

    @classmethod
    def delivered(cls, account: Account, news_count: int = 0) -> AccountOutcome:
        return cls(
            account_id=account.id,
            email=account.email,
            status=OutcomeStatus.DELIVERED,
            news_count=news_count,
        )

    @classmethod
    def skipped(cls, account: Account, reason: str) -> AccountOutcome:
        return cls(
            account_id=account.id,
            email=account.email,
            status=OutcomeStatus.SKIPPED,
            reason=reason,
        )

    @classmethod
    def failed(cls, account: Account, reason: str, news_count: int = 0) -> AccountOutcome:
        return cls(
            account_id=account.id,
            email=account.email,
            status=OutcomeStatus.FAILED,
            reason=reason,
            news_count=news_count,
        )


class DigestReport(BaseModel):
    """Summary of one digest run."""

    run_id: str
    started_at: datetime
    finished_at: datetime
    processed: int = Field(description="Accounts enumerated for this run")
    delivered: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: int = Field(default=0, description="Accounts never started due to cancel()")
    outcomes: list[AccountOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls,
        run: DigestRun,
        outcomes: list[AccountOutcome],
        *,
        processed: int,
        cancelled: int = 0,
    ) -> DigestReport:
        return cls(
            run_id=run.run_id,
            started_at=run.started_at,
            finished_at=datetime.now(UTC),
            processed=processed,
            delivered=sum(1 for o in outcomes if o.status is OutcomeStatus.DELIVERED),
            failed=sum(1 for o in outcomes if o.status is OutcomeStatus.FAILED),
            skipped=sum(1 for o in outcomes if o.status is OutcomeStatus.SKIPPED),
            cancelled=cancelled,
            outcomes=outcomes,
        )

    def outcome_for(self, account_id: str) -> AccountOutcome | None:
        for outcome in self.outcomes:
            if outcome.account_id == account_id:
                return outcome
        return None


@dataclass
class PendingDelivery:
    """A summarized digest waiting for the delivery batch."""

    account: Account
    body: str
    news_count: int


def format_digest_date(day: date) -> str:
    """Format a run date for subjects and headers, e.g. 'Monday, October 19, 2026'."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


@dataclass
class DigestRun:
    """Run-scoped state, discarded when the run ends.

    Holds the single-flight general news task: the first account without a
    watchlist starts the fetch, every later one awaits the same task, and a
    failed fetch is not retried within the run.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    _general_task: asyncio.Task[list[NewsItem]] | None = field(default=None, repr=False)

    @property
    def context_date(self) -> str:
        return format_digest_date(self.started_at.date())

    @property
    def general_fetch_started(self) -> bool:
        return self._general_task is not None

    async def shared_general_news(
        self, fetch: Callable[[], Awaitable[list[NewsItem]]]
    ) -> list[NewsItem]:
        if self._general_task is None:
            self._general_task = asyncio.ensure_future(fetch())
        # Shield so one waiter's cancellation doesn't cancel the fetch for the others
        return await asyncio.shield(self._general_task)

    def close(self) -> None:
        if self._general_task is not None and not self._general_task.done():
            self._general_task.cancel()
