"""Tests for the membership sync channel and local views."""

from signalist.core.events import (
    MembershipAction,
    MembershipChangeEvent,
    MembershipSyncChannel,
    MembershipView,
    get_sync_channel,
)


def _added(symbol: str, company: str = "Co") -> MembershipChangeEvent:
    return MembershipChangeEvent(symbol=symbol, company_name=company, action=MembershipAction.ADDED)


def _removed(symbol: str) -> MembershipChangeEvent:
    return MembershipChangeEvent(symbol=symbol, company_name="", action=MembershipAction.REMOVED)


class TestMembershipSyncChannel:
    def test_delivers_in_registration_order(self) -> None:
        channel = MembershipSyncChannel()
        calls: list[str] = []
        channel.subscribe(lambda e: calls.append(f"first:{e.symbol}"))
        channel.subscribe(lambda e: calls.append(f"second:{e.symbol}"))

        channel.publish(_added("AAPL"))

        assert calls == ["first:AAPL", "second:AAPL"]

    def test_failing_listener_does_not_block_others(self) -> None:
        channel = MembershipSyncChannel()
        received: list[MembershipChangeEvent] = []

        def broken(_: MembershipChangeEvent) -> None:
            raise RuntimeError("listener bug")

        channel.subscribe(broken)
        channel.subscribe(received.append)

        channel.publish(_added("MSFT"))

        assert [e.symbol for e in received] == ["MSFT"]

    def test_unsubscribe_is_idempotent(self) -> None:
        channel = MembershipSyncChannel()
        received: list[MembershipChangeEvent] = []
        unsubscribe = channel.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        channel.publish(_added("TSLA"))

        assert received == []
        assert channel.listener_count == 0

    def test_late_subscriber_gets_no_replay(self) -> None:
        channel = MembershipSyncChannel()
        channel.publish(_added("NVDA"))

        received: list[MembershipChangeEvent] = []
        channel.subscribe(received.append)

        assert received == []

    def test_listener_may_unsubscribe_during_publish(self) -> None:
        channel = MembershipSyncChannel()
        received: list[str] = []
        handles: dict[str, object] = {}

        def once(event: MembershipChangeEvent) -> None:
            received.append(event.symbol)
            handles["once"]()  # type: ignore[operator]

        handles["once"] = channel.subscribe(once)
        channel.subscribe(lambda e: received.append(f"other:{e.symbol}"))

        channel.publish(_added("AMD"))
        channel.publish(_added("INTC"))

        assert received == ["AMD", "other:AMD", "other:INTC"]

    def test_event_to_dict(self) -> None:
        assert _added("AAPL", "Apple Inc.").to_dict() == {
            "symbol": "AAPL",
            "company_name": "Apple Inc.",
            "action": "added",
        }

    def test_process_wide_channel_is_shared(self) -> None:
        assert get_sync_channel() is get_sync_channel()


class TestMembershipView:
    def test_add_is_idempotent(self) -> None:
        view = MembershipView()

        view.apply(_added("AAPL", "Apple Inc."))
        view.apply(_added("aapl", "Apple"))

        assert view.symbols == ["AAPL"]
        assert view.entries == [("AAPL", "Apple Inc.")]

    def test_remove_is_idempotent(self) -> None:
        view = MembershipView([("AAPL", "Apple Inc.")])

        view.apply(_removed("AAPL"))
        view.apply(_removed("AAPL"))

        assert view.symbols == []
        assert not view.contains("AAPL")

    def test_contains_is_case_insensitive(self) -> None:
        view = MembershipView([("msft", "Microsoft")])
        assert view.contains("MSFT")
        assert view.contains("msft")

    def test_views_converge_through_channel(self) -> None:
        channel = MembershipSyncChannel()
        search_results = MembershipView()
        detail_button = MembershipView([("AAPL", "Apple Inc.")])
        search_results.attach(channel)
        detail_button.attach(channel)

        channel.publish(_added("AAPL", "Apple Inc."))
        channel.publish(_added("GOOG", "Alphabet"))
        channel.publish(_removed("AAPL"))

        assert search_results.symbols == ["GOOG"]
        assert detail_button.symbols == ["GOOG"]

    def test_reset_replaces_state(self) -> None:
        view = MembershipView([("AAPL", "Apple Inc.")])
        view.reset([("TSLA", "Tesla")])
        assert view.symbols == ["TSLA"]
