"""Tests for DigestOrchestrator: isolation, shared fetch, delivery and cancellation."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from signalist.core.exceptions import DigestRunError, NewsSourceError
from signalist.processing.digest import (
    DigestOrchestrator,
    NewsSummarizer,
    OutcomeStatus,
    format_digest_date,
)
from signalist.processing.news import NewsAggregator, NewsItem
from signalist.processing.watchlist.models import Account

BASE_TS = 1_760_000_000


def _article(key: str, published_at: int = BASE_TS) -> dict[str, Any]:
    return {
        "id": key,
        "headline": f"Headline {key}",
        "summary": f"Summary {key}",
        "source": "Reuters",
        "url": f"https://news.example.com/{key}",
        "datetime": published_at,
        "category": "general",
        "related": "",
    }


class FakeAccounts:
    def __init__(self, accounts: list[Account] | Exception) -> None:
        self._accounts = accounts

    async def list_accounts_for_digest(self) -> list[Account]:
        if isinstance(self._accounts, Exception):
            raise self._accounts
        return self._accounts

    async def resolve_account_id(self, email: str) -> str | None:
        return None


class FakeStore:
    def __init__(self, symbols: dict[str, list[str]]) -> None:
        self._symbols = symbols

    async def list_symbols(self, account_id: str) -> list[str]:
        return self._symbols.get(account_id, [])


class CountingSource:
    def __init__(
        self,
        general: list[Any] | Exception,
        feeds: dict[str, list[Any]] | None = None,
    ) -> None:
        self.general = general
        self.feeds = feeds or {}
        self.general_calls = 0

    async def fetch_general(self) -> list[Any]:
        self.general_calls += 1
        await asyncio.sleep(0.01)
        if isinstance(self.general, Exception):
            raise self.general
        return self.general

    async def fetch_for_symbol(self, symbol: str, from_date: date, to_date: date) -> list[Any]:
        return self.feeds.get(symbol, [])

    async def close(self) -> None:
        pass


class IdListSummarizer:
    """Summarizes to the comma-joined item ids so tests can see what was sent."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.calls = 0

    async def summarize(self, items: Sequence[NewsItem]) -> str:
        self.calls += 1
        ids = [str(i.id) for i in items]
        if self.fail_for.intersection(ids):
            raise RuntimeError("model unavailable")
        return ",".join(ids)


def _accounts(n: int) -> list[Account]:
    return [Account(id=str(i), email=f"user{i}@example.com") for i in range(1, n + 1)]


def _delivery(result: bool = True) -> AsyncMock:
    delivery = AsyncMock()
    delivery.deliver.return_value = result
    return delivery


def _bodies_by_recipient(delivery: AsyncMock) -> dict[str, str]:
    return {c.args[0]: c.args[2] for c in delivery.deliver.await_args_list}


def _orchestrator(
    accounts: list[Account] | Exception,
    symbols: dict[str, list[str]],
    source: CountingSource,
    summarizer: Any,
    delivery: AsyncMock,
    **kwargs: Any,
) -> DigestOrchestrator:
    return DigestOrchestrator(
        FakeAccounts(accounts),
        FakeStore(symbols),  # type: ignore[arg-type]
        NewsAggregator(source, today=lambda: date(2026, 10, 19)),
        summarizer,
        delivery,
        **kwargs,
    )


class TestIsolation:
    async def test_one_failing_summary_does_not_affect_others(self) -> None:
        source = CountingSource(
            general=[_article("g0")],
            feeds={"MSFT": [_article("msft0")]},
        )
        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(3),
            {"2": ["MSFT"]},
            source,
            IdListSummarizer(fail_for={"msft0"}),
            delivery,
        )

        report = await orchestrator.run()

        assert report.outcome_for("1").status is OutcomeStatus.DELIVERED  # type: ignore[union-attr]
        assert report.outcome_for("2").status is OutcomeStatus.FAILED  # type: ignore[union-attr]
        failed = report.outcome_for("2")
        assert failed is not None
        assert failed.reason and failed.reason.startswith("summarizer failed")
        assert report.outcome_for("3").status is OutcomeStatus.DELIVERED  # type: ignore[union-attr]
        assert (report.processed, report.delivered, report.failed) == (3, 2, 1)
        assert delivery.deliver.await_count == 2

    async def test_model_error_in_real_summarizer_fails_only_that_account(self) -> None:
        def model_fn(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            if "msft0" in str(messages):
                raise RuntimeError("provider returned 500")
            return ModelResponse(parts=[TextPart("<p>Markets were calm.</p>")])

        source = CountingSource(
            general=[_article("g0")],
            feeds={"MSFT": [_article("msft0")]},
        )
        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(3),
            {"2": ["MSFT"]},
            source,
            NewsSummarizer(model=FunctionModel(model_fn)),
            delivery,
        )

        report = await orchestrator.run()

        failed = report.outcome_for("2")
        assert failed is not None
        assert failed.status is OutcomeStatus.FAILED
        assert failed.reason and failed.reason.startswith("summarizer failed")
        assert report.delivered == 2
        bodies = _bodies_by_recipient(delivery)
        assert "user2@example.com" not in bodies
        assert bodies["user1@example.com"] == "<p>Markets were calm.</p>"

    async def test_model_timeout_in_real_summarizer_fails_account(self) -> None:
        async def slow_model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            await asyncio.sleep(1)
            return ModelResponse(parts=[TextPart("<p>late</p>")])

        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(1),
            {},
            CountingSource(general=[_article("g0")]),
            NewsSummarizer(model=FunctionModel(slow_model), timeout=0.01),
            delivery,
        )

        report = await orchestrator.run()

        assert report.outcomes[0].status is OutcomeStatus.FAILED
        assert report.outcomes[0].reason == "summarizer timed out"
        delivery.deliver.assert_not_awaited()

    async def test_watchlist_failure_is_isolated(self) -> None:
        class BrokenStore:
            async def list_symbols(self, account_id: str) -> list[str]:
                if account_id == "1":
                    raise OSError("db down")
                return []

        orchestrator = DigestOrchestrator(
            FakeAccounts(_accounts(2)),
            BrokenStore(),  # type: ignore[arg-type]
            NewsAggregator(CountingSource(general=[_article("g0")])),
            IdListSummarizer(),
            _delivery(),
        )

        report = await orchestrator.run()

        assert report.outcome_for("1").status is OutcomeStatus.FAILED  # type: ignore[union-attr]
        assert report.outcome_for("2").status is OutcomeStatus.DELIVERED  # type: ignore[union-attr]

    async def test_delivery_failure_recorded_per_account(self) -> None:
        delivery = AsyncMock()
        delivery.deliver.side_effect = [True, False, ConnectionError("smtp down")]
        orchestrator = _orchestrator(
            _accounts(3),
            {},
            CountingSource(general=[_article("g0")]),
            IdListSummarizer(),
            delivery,
            max_workers=1,
        )

        report = await orchestrator.run()

        assert report.delivered == 1
        assert report.failed == 2
        reasons = {o.reason for o in report.outcomes if o.status is OutcomeStatus.FAILED}
        assert "delivery rejected" in reasons
        assert any(r and r.startswith("delivery failed") for r in reasons)

    async def test_delivery_timeout_is_failure(self) -> None:
        async def slow_deliver(recipient: str, context_date: str, body: str) -> bool:
            await asyncio.sleep(1)
            return True

        delivery = AsyncMock()
        delivery.deliver.side_effect = slow_deliver
        orchestrator = _orchestrator(
            _accounts(1),
            {},
            CountingSource(general=[_article("g0")]),
            IdListSummarizer(),
            delivery,
            timeout_seconds=0.05,
        )

        report = await orchestrator.run()

        assert report.outcomes[0].status is OutcomeStatus.FAILED
        assert report.outcomes[0].reason == "delivery timed out"


class TestSharedGeneralNews:
    async def test_single_fetch_across_symbolless_accounts(self) -> None:
        source = CountingSource(general=[_article("g0"), _article("g1")])
        summarizer = IdListSummarizer()
        orchestrator = _orchestrator(_accounts(5), {}, source, summarizer, _delivery())

        report = await orchestrator.run()

        assert source.general_calls == 1
        assert summarizer.calls == 5
        assert report.delivered == 5

    async def test_failed_shared_fetch_fails_dependents_without_retry(self) -> None:
        source = CountingSource(
            general=NewsSourceError("feed down"),
            feeds={"AAPL": [_article("aapl0")]},
        )
        orchestrator = _orchestrator(
            _accounts(4), {"4": ["AAPL"]}, source, IdListSummarizer(), _delivery()
        )

        report = await orchestrator.run()

        assert source.general_calls == 1
        assert report.failed == 3
        assert report.outcome_for("4").status is OutcomeStatus.DELIVERED  # type: ignore[union-attr]
        for account_id in ("1", "2", "3"):
            outcome = report.outcome_for(account_id)
            assert outcome is not None
            assert outcome.reason and outcome.reason.startswith("news fetch failed")


class TestEndToEnd:
    async def test_two_account_scenario(self) -> None:
        general = [
            _article("g0", BASE_TS - 10),
            _article("g1", BASE_TS - 20),
            _article("g0", BASE_TS - 10),
            _article("g2", BASE_TS - 30),
            _article("g3", BASE_TS - 40),
            _article("g1", BASE_TS - 20),
            _article("g4", BASE_TS - 50),
            _article("g5", BASE_TS - 60),
        ]
        aapl = [
            _article("aapl0", BASE_TS - 300),
            _article("aapl1", BASE_TS - 100),
            _article("aapl2", BASE_TS - 200),
        ]
        source = CountingSource(general=general, feeds={"AAPL": aapl})
        delivery = _delivery()
        accounts = [
            Account(id="1", email="ada@example.com"),
            Account(id="2", email="bob@example.com"),
        ]
        orchestrator = _orchestrator(
            accounts, {"2": ["AAPL"]}, source, IdListSummarizer(), delivery
        )

        report = await orchestrator.run()

        bodies = _bodies_by_recipient(delivery)
        assert bodies["ada@example.com"] == "g0,g1,g2,g3,g4,g5"
        assert bodies["bob@example.com"] == "aapl1,aapl2,aapl0"
        assert [o.status for o in report.outcomes] == [
            OutcomeStatus.DELIVERED,
            OutcomeStatus.DELIVERED,
        ]
        assert [o.news_count for o in report.outcomes] == [6, 3]

    async def test_delivery_uses_run_date(self) -> None:
        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(1), {}, CountingSource(general=[_article("g0")]), IdListSummarizer(), delivery
        )

        report = await orchestrator.run()

        context_date = delivery.deliver.await_args.args[1]
        assert context_date == format_digest_date(report.started_at.date())


class TestRunLevel:
    async def test_no_accounts_is_noop(self) -> None:
        delivery = _delivery()
        source = CountingSource(general=[])
        orchestrator = _orchestrator([], {}, source, IdListSummarizer(), delivery)

        report = await orchestrator.run()

        assert report.processed == 0
        assert report.outcomes == []
        assert source.general_calls == 0
        delivery.deliver.assert_not_awaited()

    async def test_account_enumeration_failure_raises(self) -> None:
        orchestrator = _orchestrator(
            OSError("db down"), {}, CountingSource(general=[]), IdListSummarizer(), _delivery()
        )

        with pytest.raises(DigestRunError):
            await orchestrator.run()
        assert not orchestrator.is_running

    async def test_accounts_without_email_are_skipped(self) -> None:
        accounts = [Account(id="1", email=None), Account(id="2", email="bob@example.com")]
        orchestrator = _orchestrator(
            accounts, {}, CountingSource(general=[_article("g0")]), IdListSummarizer(), _delivery()
        )

        report = await orchestrator.run()

        assert report.outcome_for("1").status is OutcomeStatus.SKIPPED  # type: ignore[union-attr]
        assert report.delivered == 1
        assert report.delivered + report.failed + report.skipped == report.processed

    async def test_recipients_allowlist(self) -> None:
        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(2),
            {},
            CountingSource(general=[_article("g0")]),
            IdListSummarizer(),
            delivery,
            recipients_allowlist=["USER2@example.com"],
        )

        report = await orchestrator.run()

        skipped = report.outcome_for("1")
        assert skipped is not None
        assert skipped.reason == "not in recipients allowlist"
        assert list(_bodies_by_recipient(delivery)) == ["user2@example.com"]

    async def test_summarizer_fallback_text_is_delivered(self) -> None:
        summarizer = AsyncMock()
        summarizer.summarize.return_value = "No news available today."
        delivery = _delivery()
        orchestrator = _orchestrator(
            _accounts(1), {}, CountingSource(general=[]), summarizer, delivery
        )

        report = await orchestrator.run()

        assert report.delivered == 1
        assert delivery.deliver.await_args.args[2] == "No news available today."


class TestCancellation:
    async def test_cancel_stops_scheduling_new_accounts(self) -> None:
        delivery = _delivery()
        orchestrator: DigestOrchestrator

        class CancellingSummarizer:
            async def summarize(self, items: Sequence[NewsItem]) -> str:
                orchestrator.cancel()
                return "digest"

        orchestrator = _orchestrator(
            _accounts(3),
            {},
            CountingSource(general=[_article("g0")]),
            CancellingSummarizer(),
            delivery,
            max_workers=1,
        )

        report = await orchestrator.run()

        # The in-flight account still completes and is delivered
        assert report.outcome_for("1").status is OutcomeStatus.DELIVERED  # type: ignore[union-attr]
        assert report.cancelled == 2
        for account_id in ("2", "3"):
            outcome = report.outcome_for(account_id)
            assert outcome is not None
            assert outcome.status is OutcomeStatus.SKIPPED
            assert outcome.reason == "run cancelled"
        assert delivery.deliver.await_count == 1

    async def test_cancel_does_not_leak_into_next_run(self) -> None:
        orchestrator = _orchestrator(
            _accounts(2),
            {},
            CountingSource(general=[_article("g0")]),
            IdListSummarizer(),
            _delivery(),
        )
        orchestrator.cancel()

        report = await orchestrator.run()

        assert report.delivered == 2
        assert report.cancelled == 0

    async def test_wait_idle_blocks_until_run_finishes(self) -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        class BlockingSummarizer:
            async def summarize(self, items: Sequence[NewsItem]) -> str:
                started.set()
                await release.wait()
                return "digest"

        orchestrator = _orchestrator(
            _accounts(1),
            {},
            CountingSource(general=[_article("g0")]),
            BlockingSummarizer(),
            _delivery(),
        )
        task = asyncio.create_task(orchestrator.run())
        await started.wait()

        assert await orchestrator.wait_idle(0.01) is False
        release.set()
        assert await orchestrator.wait_idle(1) is True
        report = await task
        assert report.delivered == 1

    async def test_wait_idle_without_run(self) -> None:
        orchestrator = _orchestrator(
            _accounts(1), {}, CountingSource(general=[]), IdListSummarizer(), _delivery()
        )

        assert await orchestrator.wait_idle(0.01) is True
