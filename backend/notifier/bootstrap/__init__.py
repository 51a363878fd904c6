"""Dependency wiring for the notifier."""

from notifier.bootstrap.notification_bootstrap import (
    NotificationBootstrap,
    NotificationContainer,
)

__all__ = ["NotificationBootstrap", "NotificationContainer"]
