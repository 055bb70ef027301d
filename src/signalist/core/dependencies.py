"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from signalist.config import Settings, get_settings
from signalist.notifications.email import EmailDelivery
from signalist.processing.news.aggregator import NewsAggregator
from signalist.processing.watchlist.store import WatchlistStore
from signalist.worker import WorkerState

# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_worker_state(request: Request) -> WorkerState:
    """Get WorkerState from app.state (set during lifespan)."""
    return request.app.state.worker  # type: ignore[no-any-return]


WorkerStateDep = Annotated[WorkerState, Depends(get_worker_state)]


def get_watchlist_store(state: WorkerStateDep) -> WatchlistStore:
    return state.store


def get_aggregator(state: WorkerStateDep) -> NewsAggregator:
    """Get the news aggregator, 503 when no news source is configured."""
    if state.aggregator is None:
        raise HTTPException(
            status_code=503, detail="News service not available (no FINNHUB_API_KEY)"
        )
    return state.aggregator


def get_delivery(state: WorkerStateDep) -> EmailDelivery:
    """Get the email delivery service, 503 when SMTP is not configured."""
    if state.delivery is None:
        raise HTTPException(status_code=503, detail="Email delivery not configured")
    return state.delivery


# Annotated dependencies for use in route handlers
WatchlistStoreDep = Annotated[WatchlistStore, Depends(get_watchlist_store)]
AggregatorDep = Annotated[NewsAggregator, Depends(get_aggregator)]
DeliveryDep = Annotated[EmailDelivery, Depends(get_delivery)]
