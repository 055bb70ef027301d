"""News aggregation for digests and the news API.

Two modes:

- General: one call to the general market feed, deduplicated by
  (id, url, headline), invalid items dropped, capped, feed order kept.
- Scoped: round-robin over the symbol list. Round r takes each symbol's r-th
  company-news item (if present and valid) before any symbol contributes its
  (r+1)-th, so a high-volume symbol cannot crowd out the others. The result
  is re-sorted newest first.

A failed company-news call only costs that symbol its item for the current
round. Only a misconfigured source, an unreachable general feed, or a
symbol list that is empty after trimming raise.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from signalist.core.constants import (
    MAX_NEWS_ITEMS,
    MAX_NEWS_ROUNDS,
    NEWS_FETCH_TIMEOUT_SECONDS,
    NEWS_WINDOW_DAYS,
)
from signalist.core.exceptions import NewsAggregationError, NewsSourceUnavailableError
from signalist.core.logging import get_logger
from signalist.processing.news.models import NewsItem, dedup_key, is_valid_article
from signalist.processing.watchlist.models import normalize_symbol

if TYPE_CHECKING:
    from signalist.providers.base import NewsSource

logger = get_logger(__name__)


def _utc_today() -> date:
    return datetime.now(UTC).date()


class NewsAggregator:
    """Bounded, deduplicated, fairly-sampled news for a symbol list or the market."""

    def __init__(
        self,
        source: NewsSource,
        *,
        max_items: int = MAX_NEWS_ITEMS,
        max_rounds: int = MAX_NEWS_ROUNDS,
        window_days: int = NEWS_WINDOW_DAYS,
        fetch_timeout: float = NEWS_FETCH_TIMEOUT_SECONDS,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._source = source
        self._max_items = max_items
        self._max_rounds = max_rounds
        self._window_days = window_days
        self._fetch_timeout = fetch_timeout
        self._today = today

    async def get_news(self, symbols: Sequence[str] | None = None) -> list[NewsItem]:
        """Scoped news when symbols are given, general market news otherwise."""
        if symbols:
            return await self.get_symbol_news(symbols)
        return await self.get_general_news()

    def date_window(self) -> tuple[date, date]:
        """Inclusive (from, to) recency window for company news."""
        today = self._today()
        return today - timedelta(days=self._window_days), today

    # -------------------------------------------------------------------------
    # General feed
    # -------------------------------------------------------------------------

    async def get_general_news(self) -> list[NewsItem]:
        """Fetch general market news.

        Raises:
            NewsSourceUnavailableError: If the feed is misconfigured or unreachable
        """
        try:
            raw_items = await asyncio.wait_for(
                self._source.fetch_general(), timeout=self._fetch_timeout
            )
        except NewsSourceUnavailableError:
            raise
        except Exception as e:
            logger.error("General news fetch failed", error=str(e))
            raise NewsSourceUnavailableError("General news feed is unreachable") from e

        if not isinstance(raw_items, list):
            raise NewsSourceUnavailableError("General news feed returned a malformed payload")

        seen: set[tuple[str, str, str]] = set()
        items: list[NewsItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            key = dedup_key(raw)
            if key in seen:
                continue
            seen.add(key)
            if not is_valid_article(raw):
                continue
            items.append(NewsItem.from_raw(raw))
            if len(items) >= self._max_items:
                break

        logger.debug("General news aggregated", raw_count=len(raw_items), returned=len(items))
        return items

    # -------------------------------------------------------------------------
    # Scoped (round-robin) feed
    # -------------------------------------------------------------------------

    async def get_symbol_news(self, symbols: Sequence[str]) -> list[NewsItem]:
        """Fetch company news for a symbol list with round-robin fairness.

        Each symbol's feed is requested at most once per call and rounds index
        into it; a symbol whose request failed is retried in the next round.
        Within a round, only as many symbols are requested at once as items
        are still missing, so the cap is never overshot by a wide fan-out.

        Raises:
            NewsAggregationError: If no symbol is left after trimming
            NewsSourceUnavailableError: If the source is misconfigured
        """
        clean = list(dict.fromkeys(s for s in (normalize_symbol(x) for x in symbols) if s))
        if not clean:
            raise NewsAggregationError("No valid symbols provided")

        from_date, to_date = self.date_window()
        feeds: dict[str, list[Any]] = {}
        seen: set[tuple[str, str, str]] = set()
        collected: list[NewsItem] = []

        for round_index in range(self._max_rounds):
            position = 0
            while position < len(clean) and len(collected) < self._max_items:
                batch = clean[position : position + self._max_items - len(collected)]
                position += len(batch)

                await self._load_feeds(
                    [s for s in batch if s not in feeds], feeds, from_date, to_date, round_index
                )

                # Append in input order so a round's output never depends on timing
                for symbol in batch:
                    if len(collected) >= self._max_items:
                        break
                    item = self._take(feeds.get(symbol), round_index, seen)
                    if item is not None:
                        collected.append(item)

            if len(collected) >= self._max_items or self._exhausted(
                clean, feeds, round_index
            ):
                break

        collected.sort(key=lambda item: item.published_at, reverse=True)
        logger.debug(
            "Symbol news aggregated",
            symbols=clean,
            returned=len(collected),
            rounds=round_index + 1,
        )
        return collected

    async def _load_feeds(
        self,
        symbols: list[str],
        feeds: dict[str, list[Any]],
        from_date: date,
        to_date: date,
        round_index: int,
    ) -> None:
        if not symbols:
            return
        results = await asyncio.gather(
            *(self._fetch_symbol(s, from_date, to_date, round_index) for s in symbols)
        )
        for symbol, feed in zip(symbols, results):
            if feed is not None:
                feeds[symbol] = feed

    async def _fetch_symbol(
        self,
        symbol: str,
        from_date: date,
        to_date: date,
        round_index: int,
    ) -> list[Any] | None:
        try:
            feed = await asyncio.wait_for(
                self._source.fetch_for_symbol(symbol, from_date, to_date),
                timeout=self._fetch_timeout,
            )
        except NewsSourceUnavailableError:
            raise
        except Exception as e:
            logger.warning(
                "Company news fetch failed, skipping symbol this round",
                symbol=symbol,
                round=round_index,
                error=str(e) or type(e).__name__,
            )
            return None

        if not isinstance(feed, list):
            logger.warning("Company news payload malformed", symbol=symbol, round=round_index)
            return None
        return feed

    @staticmethod
    def _take(
        feed: list[Any] | None,
        round_index: int,
        seen: set[tuple[str, str, str]],
    ) -> NewsItem | None:
        """The feed's item for this round, if usable and not already collected."""
        if feed is None or round_index >= len(feed):
            return None
        raw = feed[round_index]
        if not is_valid_article(raw):
            return None
        key = dedup_key(raw)
        if key in seen:
            return None
        seen.add(key)
        return NewsItem.from_raw(raw)

    @staticmethod
    def _exhausted(symbols: list[str], feeds: dict[str, list[Any]], round_index: int) -> bool:
        """True once every feed is loaded and has no item for the next round."""
        return all(s in feeds and len(feeds[s]) <= round_index + 1 for s in symbols)
