"""PostgreSQL database connection using raw asyncpg."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast

import asyncpg

from signalist.core.exceptions import DatabaseConnectionError
from signalist.core.logging import get_logger

logger = get_logger(__name__)

# Watchlist entries are unique per (account_id, symbol); the constraint is what
# keeps concurrent adds from racing, so it must exist before any write.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS watchlist (
    id BIGSERIAL PRIMARY KEY,
    account_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    company_name TEXT NOT NULL,
    added_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT watchlist_account_symbol_key UNIQUE (account_id, symbol)
);
CREATE INDEX IF NOT EXISTS watchlist_account_id_idx ON watchlist (account_id);
"""


class Database:
    """Async PostgreSQL database wrapper using asyncpg."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        # Convert SQLAlchemy-style DSN to asyncpg format
        dsn = self._dsn.replace("postgresql+asyncpg://", "postgresql://")

        try:
            self._pool = await asyncpg.create_pool(
                dsn,
                min_size=self._min_size,
                max_size=self._max_size,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DatabaseConnectionError(f"Could not connect to PostgreSQL: {e}") from e
        logger.debug("Database pool created", min_size=self._min_size, max_size=self._max_size)

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.debug("Database pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool."""
        if not self._pool:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query and return status."""
        async with self.acquire() as conn:
            result = await conn.execute(query, *args)
            return cast(str, result)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Fetch multiple rows."""
        async with self.acquire() as conn:
            result = await conn.fetch(query, *args)
            return list(result)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def ensure_schema(self) -> None:
        """Create the watchlist table and its uniqueness constraint if missing."""
        await self.execute(SCHEMA_SQL)
        logger.debug("Database schema ensured")

    # -------------------------------------------------------------------------
    # Watchlist
    # -------------------------------------------------------------------------

    async def insert_watchlist_entry(
        self,
        account_id: str,
        symbol: str,
        company_name: str,
    ) -> asyncpg.Record | None:
        """Insert a watchlist entry.

        Deliberately a plain INSERT: a duplicate surfaces as
        ``asyncpg.UniqueViolationError`` so the caller can tell a concurrent
        duplicate apart from any other write failure.

        Returns:
            The inserted row (account_id, symbol, company_name, added_at)
        """
        query = """
            INSERT INTO watchlist (account_id, symbol, company_name)
            VALUES ($1, $2, $3)
            RETURNING account_id, symbol, company_name, added_at
        """
        return await self.fetchrow(query, account_id, symbol, company_name)

    async def delete_watchlist_entry(self, account_id: str, symbol: str) -> str | None:
        """Delete a watchlist entry.

        Returns:
            The deleted entry's company name, or None if no row matched
        """
        query = """
            DELETE FROM watchlist
            WHERE account_id = $1 AND symbol = $2
            RETURNING company_name
        """
        company_name: str | None = await self.fetchval(query, account_id, symbol)
        return company_name

    async def get_watchlist_entries(self, account_id: str) -> list[asyncpg.Record]:
        """Get an account's watchlist entries, oldest first."""
        query = """
            SELECT account_id, symbol, company_name, added_at
            FROM watchlist
            WHERE account_id = $1
            ORDER BY added_at, symbol
        """
        return await self.fetch(query, account_id)

    async def get_watchlist_symbols(self, account_id: str) -> list[str]:
        """Get an account's watchlist symbols, oldest first."""
        query = "SELECT symbol FROM watchlist WHERE account_id = $1 ORDER BY added_at, symbol"
        rows = await self.fetch(query, account_id)
        return [row["symbol"] for row in rows]

    async def watchlist_entry_exists(self, account_id: str, symbol: str) -> bool:
        query = "SELECT EXISTS (SELECT 1 FROM watchlist WHERE account_id = $1 AND symbol = $2)"
        return bool(await self.fetchval(query, account_id, symbol))

    # -------------------------------------------------------------------------
    # Accounts (owned by the auth layer, read-only here)
    # -------------------------------------------------------------------------

    async def get_account_id_by_email(self, email: str) -> str | None:
        """Resolve an email address to the internal account key."""
        query = 'SELECT id FROM "user" WHERE lower(email) = lower($1) LIMIT 1'
        account_id = await self.fetchval(query, email)
        return str(account_id) if account_id is not None else None

    async def get_accounts_for_digest(self) -> list[asyncpg.Record]:
        """Get every account with an email address, in a stable order."""
        query = """
            SELECT id, email, name
            FROM "user"
            WHERE email IS NOT NULL AND email <> ''
            ORDER BY id
        """
        return await self.fetch(query)


# Global database instance (initialized in lifespan)
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


async def init_database(dsn: str) -> Database:
    """Initialize the global database instance."""
    global _db
    _db = Database(dsn)
    await _db.connect()
    await _db.ensure_schema()
    return _db


async def close_database() -> None:
    """Close the global database instance."""
    global _db
    if _db:
        await _db.disconnect()
        _db = None
