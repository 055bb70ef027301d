"""Market news endpoint."""

from fastapi import APIRouter, HTTPException, Query

from signalist.core.dependencies import AggregatorDep
from signalist.core.exceptions import NewsAggregationError, NewsSourceUnavailableError
from signalist.processing.news.models import NewsItem

router = APIRouter()


@router.get("", response_model=list[NewsItem])
async def get_news(
    aggregator: AggregatorDep,
    symbols: str | None = Query(
        default=None,
        description="Comma-separated tickers (e.g. AAPL,MSFT); omit for general market news",
    ),
) -> list[NewsItem]:
    """Up to 6 news items, fairly sampled across symbols."""
    try:
        if symbols is None:
            return await aggregator.get_general_news()
        return await aggregator.get_symbol_news(symbols.split(","))
    except NewsAggregationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NewsSourceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
