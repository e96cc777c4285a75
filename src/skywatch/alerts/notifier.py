"""Notification sink contract for new-alert fan-out."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Literal

PermissionStatus = Literal["not_determined", "authorized", "denied"]


class NotificationSink(ABC):
    """Where new-alert notifications are delivered.

    Implementations return True from `notify` only when the notification was
    actually scheduled or accepted; anything else leaves the alert eligible
    for another attempt on a later refresh.
    """

    @abstractmethod
    async def request_permission_if_needed(self) -> bool:
        """Return whether notifications may be posted, prompting if undetermined."""

    @abstractmethod
    async def notify(self, title: str, body: str, alert_id: str) -> bool:
        """Deliver one notification; return True when it was accepted."""


class LoggingNotificationSink(NotificationSink):
    """Sink that writes notifications to a logger, for terminal use."""

    def __init__(
        self,
        logger: logging.Logger,
        permission: PermissionStatus = "not_determined",
    ) -> None:
        self.logger = logger
        self.permission: PermissionStatus = permission

    async def request_permission_if_needed(self) -> bool:
        if self.permission == "not_determined":
            # A terminal has no prompt to show; grant on first use.
            self.permission = "authorized"
        return self.permission == "authorized"

    async def notify(self, title: str, body: str, alert_id: str) -> bool:
        self.logger.warning(
            "Weather alert: %s | %s",
            title,
            body or "-",
            extra={"alert_id": alert_id, "notification_id": notification_identifier(alert_id)},
        )
        return True


def notification_identifier(alert_id: str) -> str:
    """Stable per-alert request identifier for platform notification centers."""
    return f"nws.alert.{alert_id.rstrip('/').rsplit('/', 1)[-1]}"
