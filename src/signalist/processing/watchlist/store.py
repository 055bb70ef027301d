"""Watchlist store: the only writer of watchlist entries.

Membership is unique per (account, symbol). That invariant is enforced by
the database constraint rather than a read-before-write check, so concurrent
adds of the same symbol cannot race: one insert wins and every other one
hits the constraint and is classified as ``already_present``.

Email-keyed helpers resolve the email through the account directory first.
An unknown account reads as an empty watchlist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import asyncpg

from signalist.core.events import MembershipAction, MembershipChangeEvent
from signalist.core.exceptions import WatchlistError
from signalist.core.logging import get_logger
from signalist.processing.watchlist.models import (
    AddOutcome,
    RemoveOutcome,
    WatchlistEntry,
    normalize_symbol,
)

if TYPE_CHECKING:
    from signalist.core.events import MembershipSyncChannel
    from signalist.providers.base import AccountLookup
    from signalist.storage.database import Database

logger = get_logger(__name__)


class WatchlistStore:
    """Persisted watchlist membership with idempotent add/remove.

    When a sync channel is supplied, every successful mutation is broadcast
    on it after the write is confirmed.
    """

    def __init__(
        self,
        db: Database,
        accounts: AccountLookup,
        sync_channel: MembershipSyncChannel | None = None,
    ) -> None:
        self._db = db
        self._accounts = accounts
        self._sync_channel = sync_channel

    # -------------------------------------------------------------------------
    # Account-keyed operations
    # -------------------------------------------------------------------------

    async def add(self, account_id: str, symbol: str, company_name: str) -> AddOutcome:
        """Add a symbol to an account's watchlist.

        Args:
            account_id: Internal account key
            symbol: Ticker symbol, any case
            company_name: Display name stored with the entry

        Returns:
            CREATED for a new entry, ALREADY_PRESENT if the entry existed
            (including when a concurrent add won the race)

        Raises:
            WatchlistError: If the write failed for any other reason
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise WatchlistError("Symbol is required")
        company_name = company_name.strip() or symbol

        try:
            await self._db.insert_watchlist_entry(account_id, symbol, company_name)
        except asyncpg.UniqueViolationError:
            await self._recheck_duplicate(account_id, symbol)
            self._publish(symbol, company_name, MembershipAction.ADDED)
            return AddOutcome.ALREADY_PRESENT
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("Watchlist add failed", symbol=symbol, error=str(e))
            raise WatchlistError(f"Could not add {symbol} to watchlist") from e

        logger.info("Symbol added to watchlist", account_id=account_id, symbol=symbol)
        self._publish(symbol, company_name, MembershipAction.ADDED)
        return AddOutcome.CREATED

    async def remove(self, account_id: str, symbol: str) -> RemoveOutcome:
        """Remove a symbol from an account's watchlist.

        Returns:
            REMOVED if an entry was deleted, NOT_PRESENT otherwise

        Raises:
            WatchlistError: If the delete failed
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            return RemoveOutcome.NOT_PRESENT

        try:
            company_name = await self._db.delete_watchlist_entry(account_id, symbol)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("Watchlist remove failed", symbol=symbol, error=str(e))
            raise WatchlistError(f"Could not remove {symbol} from watchlist") from e

        if company_name is None:
            logger.debug("Symbol not on watchlist", account_id=account_id, symbol=symbol)
            self._publish(symbol, "", MembershipAction.REMOVED)
            return RemoveOutcome.NOT_PRESENT

        logger.info("Symbol removed from watchlist", account_id=account_id, symbol=symbol)
        self._publish(symbol, company_name, MembershipAction.REMOVED)
        return RemoveOutcome.REMOVED

    async def list_symbols(self, account_id: str) -> list[str]:
        """Get the symbols an account tracks (empty for an unknown account)."""
        try:
            return await self._db.get_watchlist_symbols(account_id)
        except (asyncpg.PostgresError, OSError) as e:
            raise WatchlistError("Could not read watchlist symbols") from e

    async def list_entries(self, account_id: str) -> list[WatchlistEntry]:
        """Get an account's entries with company names."""
        try:
            rows = await self._db.get_watchlist_entries(account_id)
        except (asyncpg.PostgresError, OSError) as e:
            raise WatchlistError("Could not read watchlist entries") from e
        return [WatchlistEntry.from_record(row) for row in rows]

    async def contains(self, account_id: str, symbol: str) -> bool:
        symbol = normalize_symbol(symbol)
        if not symbol:
            return False
        try:
            return await self._db.watchlist_entry_exists(account_id, symbol)
        except (asyncpg.PostgresError, OSError) as e:
            raise WatchlistError("Could not read watchlist membership") from e

    # -------------------------------------------------------------------------
    # Email-keyed operations
    # -------------------------------------------------------------------------

    async def add_by_email(self, email: str, symbol: str, company_name: str) -> AddOutcome:
        """Add a symbol for the account owning ``email``.

        Returns:
            ACCOUNT_NOT_FOUND when the email does not resolve, otherwise as add()
        """
        account_id = await self._accounts.resolve_account_id(email)
        if account_id is None:
            return AddOutcome.ACCOUNT_NOT_FOUND
        return await self.add(account_id, symbol, company_name)

    async def remove_by_email(self, email: str, symbol: str) -> RemoveOutcome:
        account_id = await self._accounts.resolve_account_id(email)
        if account_id is None:
            return RemoveOutcome.NOT_PRESENT
        return await self.remove(account_id, symbol)

    async def list_symbols_by_email(self, email: str) -> list[str]:
        account_id = await self._accounts.resolve_account_id(email)
        if account_id is None:
            return []
        return await self.list_symbols(account_id)

    async def list_entries_by_email(self, email: str) -> list[WatchlistEntry]:
        account_id = await self._accounts.resolve_account_id(email)
        if account_id is None:
            return []
        return await self.list_entries(account_id)

    async def contains_by_email(self, email: str, symbol: str) -> bool:
        account_id = await self._accounts.resolve_account_id(email)
        if account_id is None:
            return False
        return await self.contains(account_id, symbol)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _recheck_duplicate(self, account_id: str, symbol: str) -> None:
        """Log the state behind a uniqueness violation.

        The violation alone proves the entry existed at write time, so the
        outcome is already_present whatever the re-check finds.
        """
        try:
            exists = await self._db.watchlist_entry_exists(account_id, symbol)
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning("Duplicate re-check failed", symbol=symbol, error=str(e))
            return
        if exists:
            logger.debug("Symbol already on watchlist", account_id=account_id, symbol=symbol)
        else:
            logger.warning(
                "Duplicate add raced with a remove",
                account_id=account_id,
                symbol=symbol,
            )

    def _publish(self, symbol: str, company_name: str, action: MembershipAction) -> None:
        if self._sync_channel is None:
            return
        self._sync_channel.publish(
            MembershipChangeEvent(symbol=symbol, company_name=company_name, action=action)
        )
