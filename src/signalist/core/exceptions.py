"""Custom exceptions for Signalist."""


class SignalistError(Exception):
    """Base exception for all Signalist errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


class ConfigurationError(SignalistError):
    """A required credential or endpoint is missing."""


# Storage errors
class StorageError(SignalistError):
    """Base error for storage layer."""


class DatabaseConnectionError(StorageError):
    """Failed to connect to database."""


class WatchlistError(StorageError):
    """A watchlist write could not be completed."""


# News errors
class NewsError(SignalistError):
    """Base error for news retrieval."""


class NewsSourceError(NewsError):
    """A single call to the news source failed."""


class NewsSourceUnavailableError(NewsError):
    """The news source is misconfigured or entirely unreachable."""


class NewsAggregationError(NewsError):
    """Aggregation was invoked with unusable input."""


# Digest errors
class DigestError(SignalistError):
    """Base error for the digest pipeline."""


class DigestRunError(DigestError):
    """The digest run could not start or enumerate accounts."""
