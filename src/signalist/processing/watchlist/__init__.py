"""Account watchlists: membership store and account directory."""

from signalist.processing.watchlist.accounts import AccountDirectory
from signalist.processing.watchlist.models import (
    Account,
    AddOutcome,
    RemoveOutcome,
    WatchlistEntry,
    normalize_symbol,
)
from signalist.processing.watchlist.store import WatchlistStore

__all__ = [
    "Account",
    "AccountDirectory",
    "AddOutcome",
    "RemoveOutcome",
    "WatchlistEntry",
    "WatchlistStore",
    "normalize_symbol",
]
