"""Finnhub provider implementations.

- FinnhubNewsSource: general market news and company news
- RateLimiter: shared free-tier rate limiter
"""

from signalist.providers.finnhub.news import FinnhubNewsSource, RateLimiter, get_rate_limiter

__all__ = [
    "FinnhubNewsSource",
    "RateLimiter",
    "get_rate_limiter",
]
