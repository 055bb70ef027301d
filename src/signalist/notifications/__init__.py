"""Notification services for Signalist."""

from signalist.notifications.email import EmailDelivery

__all__ = ["EmailDelivery"]
