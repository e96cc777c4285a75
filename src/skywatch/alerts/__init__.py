"""Alert deduplication and notification fan-out."""

from .ledger import LEDGER_CAPACITY, AlertLedger
from .notifier import LoggingNotificationSink, NotificationSink, notification_identifier

__all__ = [
    "LEDGER_CAPACITY",
    "AlertLedger",
    "LoggingNotificationSink",
    "NotificationSink",
    "notification_identifier",
]
