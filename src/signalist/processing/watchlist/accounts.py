"""Account directory backed by the auth layer's ``user`` table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from signalist.core.logging import get_logger
from signalist.processing.watchlist.models import Account

if TYPE_CHECKING:
    from signalist.storage.database import Database

logger = get_logger(__name__)


class AccountDirectory:
    """Read-only access to accounts: digest enumeration and email resolution."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def list_accounts_for_digest(self) -> list[Account]:
        rows = await self._db.get_accounts_for_digest()
        return [
            Account(id=str(row["id"]), email=row["email"], name=row["name"]) for row in rows
        ]

    async def resolve_account_id(self, email: str) -> str | None:
        """Resolve an email address to the internal account key.

        Returns:
            The account id, or None for a blank email or unknown account
        """
        email = (email or "").strip()
        if not email:
            return None
        account_id = await self._db.get_account_id_by_email(email)
        if account_id is None:
            logger.debug("No account found for email")
        return account_id
