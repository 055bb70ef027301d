"""Data models for account watchlists."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class AddOutcome(StrEnum):
    """Result of adding a symbol to a watchlist."""

    CREATED = "created"
    ALREADY_PRESENT = "already_present"
    ACCOUNT_NOT_FOUND = "account_not_found"

    @property
    def succeeded(self) -> bool:
        """Whether the symbol is on the watchlist after the call."""
        return self is not AddOutcome.ACCOUNT_NOT_FOUND


class RemoveOutcome(StrEnum):
    """Result of removing a symbol from a watchlist."""

    REMOVED = "removed"
    NOT_PRESENT = "not_present"

    @property
    def succeeded(self) -> bool:
        return True


class WatchlistEntry(BaseModel):
    """One tracked symbol. Never updated in place: remove and re-add instead."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    symbol: str
    company_name: str
    added_at: datetime

    @classmethod
    def from_record(cls, record: Any) -> WatchlistEntry:
        return cls(
            account_id=str(record["account_id"]),
            symbol=record["symbol"],
            company_name=record["company_name"],
            added_at=record["added_at"],
        )


@dataclass(frozen=True)
class Account:
    """An identity that owns a watchlist and receives digests."""

    id: str
    email: str | None
    name: str | None = None


def normalize_symbol(symbol: str) -> str:
    """Trim and upper-case a ticker before any comparison or write."""
    return symbol.strip().upper()
