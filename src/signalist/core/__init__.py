"""Core utilities: config, logging, events, exceptions."""

from signalist.core.events import (
    MembershipAction,
    MembershipChangeEvent,
    MembershipSyncChannel,
    MembershipView,
    get_sync_channel,
)
from signalist.core.exceptions import SignalistError
from signalist.core.logging import get_logger, setup_logging

__all__ = [
    "MembershipAction",
    "MembershipChangeEvent",
    "MembershipSyncChannel",
    "MembershipView",
    "SignalistError",
    "get_logger",
    "get_sync_channel",
    "setup_logging",
]
