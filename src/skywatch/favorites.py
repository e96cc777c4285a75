"""Saved favorite locations, persisted as a JSON array in the settings store."""

from __future__ import annotations

import json
import logging
import uuid

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .storage import KeyValueStore
from .weather.models import Coordinate

FAVORITES_STORE_KEY = "favorites.locations.v1"


class FavoriteLocation(BaseModel):
    """A named place the user can switch to."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    subtitle: str = ""
    country: str | None = None
    iso_country_code: str | None = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    @property
    def display_name(self) -> str:
        """Label as `City, State` in the US and Canada, `City, Country` elsewhere."""
        if self.iso_country_code in {"US", "CA"}:
            return f"{self.title}, {self.subtitle}" if self.subtitle else self.title
        if self.country:
            return f"{self.title}, {self.country}"
        return f"{self.title}, {self.subtitle}" if self.subtitle else self.title

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


_FAVORITES_ADAPTER = TypeAdapter(list[FavoriteLocation])


class FavoritesStore:
    """Favorites kept sorted by display name, deduplicated by place."""

    def __init__(self, store: KeyValueStore, logger: logging.Logger | None = None) -> None:
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self._favorites = self._load()

    @property
    def favorites(self) -> list[FavoriteLocation]:
        return list(self._favorites)

    def add(self, location: FavoriteLocation) -> bool:
        """Add a location; returns False if the same place is already saved."""
        if any(self._same_place(existing, location) for existing in self._favorites):
            return False
        self._favorites.append(location)
        self._sort()
        self._save()
        return True

    def remove(self, location_id: uuid.UUID) -> bool:
        remaining = [fav for fav in self._favorites if fav.id != location_id]
        if len(remaining) == len(self._favorites):
            return False
        self._favorites = remaining
        self._save()
        return True

    @staticmethod
    def _same_place(a: FavoriteLocation, b: FavoriteLocation) -> bool:
        return (
            a.title == b.title
            and a.subtitle == b.subtitle
            and (a.iso_country_code or "") == (b.iso_country_code or "")
        )

    def _sort(self) -> None:
        self._favorites.sort(key=lambda fav: fav.display_name.casefold())

    def _load(self) -> list[FavoriteLocation]:
        raw = self.store.get_string(FAVORITES_STORE_KEY)
        if raw is None:
            return []
        try:
            favorites = _FAVORITES_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            self.logger.warning(
                "Discarding unreadable favorites payload: %d error(s)", exc.error_count()
            )
            return []
        favorites.sort(key=lambda fav: fav.display_name.casefold())
        return favorites

    def _save(self) -> None:
        payload = [fav.model_dump(mode="json") for fav in self._favorites]
        self.store.set_string(FAVORITES_STORE_KEY, json.dumps(payload))
