"""Tests for digest run models."""

import asyncio
from datetime import UTC, date, datetime

import pytest

from signalist.processing.digest.models import (
    AccountOutcome,
    DigestReport,
    DigestRun,
    OutcomeStatus,
    format_digest_date,
)
from signalist.processing.news.models import NewsItem
from signalist.processing.watchlist.models import Account


def _item(key: str) -> NewsItem:
    return NewsItem(
        id=key,
        headline=f"Headline {key}",
        summary="Summary",
        source="Reuters",
        url=f"https://news.example.com/{key}",
        published_at=1_760_000_000,
    )


class TestFormatDigestDate:
    def test_long_form(self) -> None:
        assert format_digest_date(date(2026, 10, 19)) == "Monday, October 19, 2026"

    def test_single_digit_day_not_padded(self) -> None:
        assert format_digest_date(date(2026, 3, 5)) == "Thursday, March 5, 2026"


class TestDigestRun:
    async def test_general_news_fetched_once(self) -> None:
        run = DigestRun()
        calls = 0

        async def fetch() -> list[NewsItem]:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return [_item("g0")]

        results = await asyncio.gather(*(run.shared_general_news(fetch) for _ in range(5)))

        assert calls == 1
        assert all(r == [_item("g0")] for r in results)
        # Later callers reuse the finished result
        assert await run.shared_general_news(fetch) == [_item("g0")]
        assert calls == 1

    async def test_failed_fetch_is_not_retried(self) -> None:
        run = DigestRun()
        calls = 0

        async def fetch() -> list[NewsItem]:
            nonlocal calls
            calls += 1
            raise RuntimeError("feed down")

        for _ in range(3):
            with pytest.raises(RuntimeError):
                await run.shared_general_news(fetch)
        assert calls == 1

    async def test_close_cancels_pending_fetch(self) -> None:
        run = DigestRun()

        async def fetch() -> list[NewsItem]:
            await asyncio.sleep(10)
            return []

        waiter = asyncio.ensure_future(run.shared_general_news(fetch))
        await asyncio.sleep(0)
        run.close()

        with pytest.raises(asyncio.CancelledError):
            await waiter

    def test_context_date(self) -> None:
        run = DigestRun(started_at=datetime(2026, 10, 19, 12, 0, tzinfo=UTC))
        assert run.context_date == "Monday, October 19, 2026"


class TestDigestReport:
    def test_counts_by_status(self) -> None:
        run = DigestRun()
        a, b, c = (Account(id=str(i), email=f"u{i}@example.com") for i in range(3))
        outcomes = [
            AccountOutcome.delivered(a, news_count=6),
            AccountOutcome.failed(b, "summarizer failed"),
            AccountOutcome.skipped(c, "run cancelled"),
        ]

        report = DigestReport.from_outcomes(run, outcomes, processed=3, cancelled=1)

        assert (report.delivered, report.failed, report.skipped) == (1, 1, 1)
        assert report.cancelled == 1
        assert report.outcome_for("1") is not None
        assert report.outcome_for("1").status is OutcomeStatus.FAILED  # type: ignore[union-attr]
        assert report.outcome_for("missing") is None

    def test_serializes_to_json(self) -> None:
        run = DigestRun()
        report = DigestReport.from_outcomes(run, [], processed=0)

        payload = report.model_dump_json()

        assert run.run_id in payload
        assert '"processed":0' in payload
