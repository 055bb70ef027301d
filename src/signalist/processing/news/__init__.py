"""Market news: item model and aggregation."""

from signalist.processing.news.aggregator import NewsAggregator
from signalist.processing.news.models import NewsItem, dedup_key, is_valid_article

__all__ = [
    "NewsAggregator",
    "NewsItem",
    "dedup_key",
    "is_valid_article",
]
