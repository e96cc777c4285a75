"""Bounded, persisted set of alert ids that were already notified."""

from __future__ import annotations

from ..storage import KeyValueStore

LEDGER_STORE_KEY = "notifiedAlertIDs"
LEDGER_CAPACITY = 200


class AlertLedger:
    """Best-effort duplicate suppression for alert notifications.

    The ledger is not an audit trail. When it grows past `capacity`, the id
    just marked plus an arbitrary subset of the others survive; no LRU or
    FIFO order is kept.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = LEDGER_STORE_KEY,
        capacity: int = LEDGER_CAPACITY,
    ) -> None:
        if capacity <= 0:
            raise ValueError("Ledger capacity must be > 0.")
        self.store = store
        self.key = key
        self.capacity = capacity

    def has_notified(self, alert_id: str) -> bool:
        return alert_id in self._load()

    def mark_notified(self, alert_id: str) -> None:
        ids = self._load()
        if alert_id in ids:
            return
        if len(ids) >= self.capacity:
            # The id being marked always survives; the rest are an arbitrary subset.
            ids = set(list(ids)[: self.capacity - 1])
        ids.add(alert_id)
        self._save(ids)

    def clear_all(self) -> None:
        self.store.remove(self.key)

    def __contains__(self, alert_id: object) -> bool:
        return isinstance(alert_id, str) and self.has_notified(alert_id)

    def __len__(self) -> int:
        return len(self._load())

    def _load(self) -> set[str]:
        return set(self.store.get_string_list(self.key))

    def _save(self, ids: set[str]) -> None:
        self.store.set_string_list(self.key, sorted(ids))
