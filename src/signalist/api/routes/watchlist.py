"""Watchlist endpoints, keyed by account email.

Membership changes are broadcast on the sync channel by the store itself,
so every in-process view stays current after a successful write.
"""

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from signalist.core.dependencies import WatchlistStoreDep
from signalist.core.exceptions import WatchlistError
from signalist.core.logging import get_logger
from signalist.processing.watchlist.models import WatchlistEntry, normalize_symbol

logger = get_logger(__name__)

router = APIRouter()

EmailQuery = Query(..., min_length=1, description="Account email")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class AddSymbolRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Account email")
    symbol: str = Field(..., min_length=1, description="Ticker symbol (e.g. AAPL)")
    company_name: str = Field(default="", description="Company display name")


class MembershipResponse(BaseModel):
    symbol: str
    outcome: str
    success: bool


class MembershipCheckResponse(BaseModel):
    symbol: str
    in_watchlist: bool


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=list[WatchlistEntry])
async def list_entries(store: WatchlistStoreDep, email: str = EmailQuery) -> list[WatchlistEntry]:
    return await store.list_entries_by_email(email)


@router.get("/symbols", response_model=list[str])
async def list_symbols(store: WatchlistStoreDep, email: str = EmailQuery) -> list[str]:
    return await store.list_symbols_by_email(email)


@router.get("/{symbol}", response_model=MembershipCheckResponse)
async def check_symbol(
    symbol: str, store: WatchlistStoreDep, email: str = EmailQuery
) -> MembershipCheckResponse:
    return MembershipCheckResponse(
        symbol=normalize_symbol(symbol),
        in_watchlist=await store.contains_by_email(email, symbol),
    )


@router.post("", response_model=MembershipResponse)
async def add_symbol(body: AddSymbolRequest, store: WatchlistStoreDep) -> MembershipResponse:
    symbol = normalize_symbol(body.symbol)
    try:
        outcome = await store.add_by_email(body.email, body.symbol, body.company_name)
    except WatchlistError as e:
        logger.error("Add to watchlist failed", symbol=symbol, error=str(e))
        return MembershipResponse(symbol=symbol, outcome="error", success=False)
    return MembershipResponse(symbol=symbol, outcome=outcome.value, success=outcome.succeeded)


@router.delete("/{symbol}", response_model=MembershipResponse)
async def remove_symbol(
    symbol: str, store: WatchlistStoreDep, email: str = EmailQuery
) -> MembershipResponse:
    normalized = normalize_symbol(symbol)
    try:
        outcome = await store.remove_by_email(email, symbol)
    except WatchlistError as e:
        logger.error("Remove from watchlist failed", symbol=normalized, error=str(e))
        return MembershipResponse(symbol=normalized, outcome="error", success=False)
    return MembershipResponse(symbol=normalized, outcome=outcome.value, success=outcome.succeeded)
