"""External collaborators: protocols and implementations."""

from signalist.providers.base import AccountLookup, Delivery, NewsSource, Summarizer
from signalist.providers.finnhub import FinnhubNewsSource

__all__ = [
    "AccountLookup",
    "Delivery",
    "FinnhubNewsSource",
    "NewsSource",
    "Summarizer",
]
