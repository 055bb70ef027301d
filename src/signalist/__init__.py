"""Signalist: watchlist-aware market news and daily digests."""

__version__ = "0.1.0"
