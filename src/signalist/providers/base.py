"""Abstract protocols for the external collaborators of the digest pipeline.

The digest core depends only on these narrow interfaces, so the news feed,
the LLM summarizer, the mail transport and the account store can each be
swapped (or faked in tests) without touching consumer code.

Provider Types:
- NewsSource: general market news and per-symbol company news
- Summarizer: turns a list of news items into digest text
- Delivery: sends a digest body to a recipient
- AccountLookup: enumerates digest recipients and resolves emails
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from signalist.processing.news.models import NewsItem
    from signalist.processing.watchlist.models import Account


@runtime_checkable
class NewsSource(Protocol):
    """Protocol for a market news feed.

    Implementations return raw items as decoded JSON objects and raise on
    any transport or decoding failure; the aggregator decides what a failure
    means for its caller.
    """

    async def fetch_general(self) -> list[dict[str, Any]]:
        """Fetch the general market news feed."""
        ...

    async def fetch_for_symbol(
        self,
        symbol: str,
        from_date: date,
        to_date: date,
    ) -> list[dict[str, Any]]:
        """Fetch company news for one symbol within an inclusive date window."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


@runtime_checkable
class Summarizer(Protocol):
    """Protocol for the digest summarizer."""

    async def summarize(self, items: Sequence[NewsItem]) -> str:
        """Summarize news items into a digest body.

        Returns:
            Digest text; a fixed fallback message for empty news or empty output

        Raises:
            Exception: When the model is unavailable, errors or times out
        """
        ...


@runtime_checkable
class Delivery(Protocol):
    """Protocol for digest delivery."""

    async def deliver(self, recipient: str, context_date: str, body: str) -> bool:
        """Deliver a digest body.

        Returns:
            True if the digest was handed off successfully
        """
        ...


@runtime_checkable
class AccountLookup(Protocol):
    """Protocol for the account directory."""

    async def list_accounts_for_digest(self) -> list[Account]: ...
    async def resolve_account_id(self, email: str) -> str | None: ...
