"""Data models for market news items."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Fields that must be present and non-empty for an item to be usable
REQUIRED_TEXT_FIELDS = ("headline", "summary", "source", "url")


def is_valid_article(raw: Any) -> bool:
    """Check a raw feed item has every field a digest needs.

    headline, summary, source and url must be non-empty strings and the
    ``datetime`` publish timestamp a non-zero number. Anything absent or
    malformed makes the item unusable.
    """
    if not isinstance(raw, dict):
        return False
    for key in REQUIRED_TEXT_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value:
            return False
    published = raw.get("datetime")
    if isinstance(published, bool) or not isinstance(published, int | float):
        return False
    return published != 0


def dedup_key(raw: dict[str, Any]) -> tuple[str, str, str]:
    """Composite identity of a raw item: (source id, url, headline)."""
    return (str(raw.get("id", "")), str(raw.get("url", "")), str(raw.get("headline", "")))


class NewsItem(BaseModel):
    """An immutable, validated news article."""

    model_config = ConfigDict(frozen=True)

    id: int | str | None = None
    headline: str
    summary: str
    source: str
    url: str
    published_at: int = Field(description="Publish time, epoch seconds")
    category: str = ""
    related_symbols: tuple[str, ...] = ()
    image: str | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> NewsItem:
        """Build from a raw feed item that passed ``is_valid_article``."""
        related = raw.get("related") or ""
        if isinstance(related, str):
            related_symbols = tuple(s.strip().upper() for s in related.split(",") if s.strip())
        else:
            related_symbols = tuple(str(s).upper() for s in related)

        return cls(
            id=raw.get("id"),
            headline=raw["headline"],
            summary=raw["summary"],
            source=raw["source"],
            url=raw["url"],
            published_at=int(raw["datetime"]),
            category=raw.get("category") or "",
            related_symbols=related_symbols,
            image=raw.get("image") or None,
        )
