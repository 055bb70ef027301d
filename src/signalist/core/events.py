"""In-process membership sync channel.

Independent surfaces (search results, detail-page button, watchlist panel)
each keep their own view of which symbols are on the watchlist. After the
watchlist store confirms a mutation, the change is published here so every
subscribed view converges on the same membership.

Delivery is synchronous, in registration order, and best effort: nothing is
persisted or replayed. A listener registered after a publish never sees that
event and must refresh from the watchlist store instead.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from signalist.core.logging import get_logger

logger = get_logger(__name__)


class MembershipAction(StrEnum):
    """What happened to a symbol's watchlist membership."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class MembershipChangeEvent:
    """A confirmed watchlist mutation."""

    symbol: str
    company_name: str
    action: MembershipAction

    def to_dict(self) -> dict[str, str]:
        return {
            "symbol": self.symbol,
            "company_name": self.company_name,
            "action": self.action.value,
        }


MembershipListener = Callable[[MembershipChangeEvent], None]


class MembershipSyncChannel:
    """Fire-and-forget publish/subscribe for membership changes."""

    def __init__(self) -> None:
        self._listeners: list[MembershipListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: MembershipListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            A handle that unregisters the listener. Calling it more than once
            is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, event: MembershipChangeEvent) -> None:
        """Deliver an event to every currently registered listener."""
        # Snapshot so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Membership listener failed",
                    symbol=event.symbol,
                    action=event.action.value,
                )

        logger.debug(
            "Membership change published",
            symbol=event.symbol,
            action=event.action.value,
            listeners=len(self._listeners),
        )


class MembershipView:
    """A local, set-based cache of watchlist membership.

    Symbols are compared case-insensitively. Applying the same event twice,
    or events out of order for different symbols, never duplicates state.
    """

    def __init__(self, entries: Iterable[tuple[str, str]] = ()) -> None:
        self._entries: dict[str, str] = {}
        self.reset(entries)

    def reset(self, entries: Iterable[tuple[str, str]]) -> None:
        """Replace local state with a fresh read from the watchlist store."""
        self._entries = {symbol.upper(): company for symbol, company in entries}

    def apply(self, event: MembershipChangeEvent) -> None:
        symbol = event.symbol.upper()
        if event.action is MembershipAction.ADDED:
            self._entries.setdefault(symbol, event.company_name)
        else:
            self._entries.pop(symbol, None)

    def attach(self, channel: MembershipSyncChannel) -> Callable[[], None]:
        """Subscribe this view to a channel, returning the unsubscribe handle."""
        return channel.subscribe(self.apply)

    def contains(self, symbol: str) -> bool:
        return symbol.upper() in self._entries

    @property
    def symbols(self) -> list[str]:
        return list(self._entries)

    @property
    def entries(self) -> list[tuple[str, str]]:
        return list(self._entries.items())


# Process-wide channel (one per running API process)
_sync_channel = MembershipSyncChannel()


def get_sync_channel() -> MembershipSyncChannel:
    """Get the process-wide membership sync channel."""
    return _sync_channel
