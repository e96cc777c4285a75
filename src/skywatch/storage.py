"""Key-value settings store used for the alert ledger and favorites.

Stores hold plain JSON-compatible values: strings, booleans, and lists of
strings. An absent key always reads as empty, so there is no schema
versioning beyond that.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .exceptions import StoreError


class KeyValueStore(ABC):
    """Minimal get/set contract over persisted application state."""

    @abstractmethod
    def _get(self, key: str) -> Any:
        """Return the raw stored value or None when the key is absent."""

    @abstractmethod
    def _set(self, key: str, value: Any) -> None:
        """Persist a raw JSON-compatible value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""

    def get_string(self, key: str) -> str | None:
        value = self._get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str) -> None:
        self._set(key, value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._get(key)
        return value if isinstance(value, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, bool(value))

    def get_string_list(self, key: str) -> list[str]:
        value = self._get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def set_string_list(self, key: str, values: list[str]) -> None:
        self._set(key, list(values))


class InMemoryStore(KeyValueStore):
    """Process-local store, mostly for tests and ephemeral runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def _get(self, key: str) -> Any:
        return self._data.get(key)

    def _set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Store persisted as a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed reading state store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreError(
                f"State store {self.path} must contain a JSON object, "
                f"got {type(payload).__name__}."
            )
        return payload

    def _flush(self) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2, sort_keys=True)
                fh.write("\n")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed writing state store {self.path}: {exc}") from exc

    def _get(self, key: str) -> Any:
        return self._data.get(key)

    def _set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()
