"""Refresh orchestration: periods (required), alerts (best-effort), notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from ..alerts.ledger import AlertLedger
from ..alerts.notifier import NotificationSink
from ..config import Settings
from ..exceptions import (
    MissingCredentialsError,
    NotificationError,
    StoreError,
    UpstreamStatusError,
    WeatherGatewayError,
)
from ..weather.base import WeatherGateway
from ..weather.models import AlertFeature, Coordinate, DailyForecast, ForecastPeriod
from .combiner import combine_day_night
from .debounce import should_skip

FORECAST_UNAVAILABLE_MESSAGE = "Forecast unavailable at this time."
CURRENT_CONDITIONS_UNAVAILABLE_MESSAGE = "Current conditions unavailable at this time."
API_KEY_REJECTED_MESSAGE = "Weather service rejected the request; check your API key."
MISSING_CREDENTIALS_MESSAGE = "Add a station ID and API key to show current conditions."

# Cap per refresh so a burst of simultaneous alerts does not spam the user.
MAX_ALERT_NOTIFICATIONS_PER_CYCLE = 2
# Seven days of alternating day/night periods.
DAILY_PERIOD_WINDOW = 14


@dataclass(slots=True)
class RefreshState:
    """Presentation state owned by a `ForecastReconciler`."""

    last_periods_coordinate: Coordinate | None = None
    last_alerts_coordinate: Coordinate | None = None
    periods: list[ForecastPeriod] = field(default_factory=list)
    alerts: list[AlertFeature] = field(default_factory=list)
    is_loading: bool = False
    error_message: str | None = None

    def copy(self) -> RefreshState:
        return replace(self, periods=list(self.periods), alerts=list(self.alerts))


StateListener = Callable[[RefreshState], None]


def user_facing_message(error: Exception, *, default: str, keyed: bool = False) -> str:
    """Collapse a gateway failure into a message fit for display.

    Status codes and raw errors are never shown. Keyed providers get an
    actionable hint when the credentials are the likely cause.
    """
    if keyed and isinstance(error, MissingCredentialsError):
        return MISSING_CREDENTIALS_MESSAGE
    if keyed and isinstance(error, UpstreamStatusError) and error.status_code in {401, 403}:
        return API_KEY_REJECTED_MESSAGE
    return default


class ForecastReconciler:
    """Runs refresh cycles for one location target and publishes state changes."""

    def __init__(
        self,
        gateway: WeatherGateway,
        ledger: AlertLedger,
        notifier: NotificationSink,
        settings: Settings,
        logger: logging.Logger,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.notifier = notifier
        self.settings = settings
        self.logger = logger
        self._state = RefreshState()
        self._listeners: list[StateListener] = []
        # Serializes refresh cycles so periods/alerts/error writes never interleave.
        self._lock = asyncio.Lock()

    @property
    def state(self) -> RefreshState:
        return self._state.copy()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self, coordinate: Coordinate) -> RefreshState:
        """Fetch periods, then alerts, and notify on alerts not seen before.

        Cancellation leaves the previous state in place (apart from the
        loading flag) and propagates to the caller.
        """
        async with self._lock:
            await self._refresh_locked(coordinate)
        return self.state

    async def load_if_needed(self, coordinate: Coordinate) -> RefreshState:
        """Cheap entry point for frequent location updates.

        Alerts and periods keep separate "last used" coordinates, because
        alerts change far more often than a multi-day forecast.
        """
        async with self._lock:
            if not should_skip(
                self._state.last_alerts_coordinate, coordinate, bool(self._state.alerts)
            ):
                await self._refresh_alerts(coordinate)

            if should_skip(
                self._state.last_periods_coordinate, coordinate, bool(self._state.periods)
            ):
                self.logger.debug(
                    "Periods fresh for (%.4f, %.4f); skipping refresh",
                    coordinate.latitude,
                    coordinate.longitude,
                )
            else:
                await self._refresh_locked(coordinate)
        return self.state

    async def notify_on_new_alerts(
        self,
        alerts: list[AlertFeature],
        location_title: str | None = None,
    ) -> int:
        """Post notifications for first-time-seen alerts; return how many were delivered."""
        if not self.settings.alert_notifications_enabled or not alerts:
            return 0

        label = location_title if location_title is not None else self.settings.location_label
        delivered_count = 0
        for alert in alerts[:MAX_ALERT_NOTIFICATIONS_PER_CYCLE]:
            if self.ledger.has_notified(alert.id):
                continue

            title = f"{alert.event} • {label}" if label else alert.event
            body = alert.headline or alert.area_desc or ""

            if not await self.notifier.request_permission_if_needed():
                self.logger.info(
                    "Notification permission not granted; alert left for retry",
                    extra={"alert_id": alert.id},
                )
                continue
            try:
                delivered = await self.notifier.notify(title, body, alert.id)
            except NotificationError as exc:
                self.logger.warning(
                    "Alert notification delivery failed: %s", exc, extra={"alert_id": alert.id}
                )
                continue

            # Only a delivered notification is recorded; failures retry next cycle.
            if not delivered:
                continue
            delivered_count += 1
            try:
                self.ledger.mark_notified(alert.id)
            except StoreError as exc:
                self.logger.warning(
                    "Notified alert could not be recorded: %s", exc, extra={"alert_id": alert.id}
                )
        return delivered_count

    def daily_forecast(self, max_days: int = 7) -> list[DailyForecast]:
        """Daily records for display, built from the first week of periods."""
        return combine_day_night(self._state.periods[:DAILY_PERIOD_WINDOW])[:max_days]

    async def _refresh_locked(self, coordinate: Coordinate) -> None:
        self._update(is_loading=True)
        try:
            try:
                periods = await self.gateway.fetch_forecast_periods(
                    coordinate.latitude, coordinate.longitude
                )
            except asyncio.CancelledError:
                self.logger.debug("Forecast refresh cancelled; prior state kept")
                raise
            except WeatherGatewayError as exc:
                self.logger.warning(
                    "Forecast periods fetch failed: %s",
                    exc,
                    extra={"error_type": type(exc).__name__},
                )
                # Alerts are skipped this cycle so their outcome cannot race the error.
                self._update(error_message=FORECAST_UNAVAILABLE_MESSAGE)
                return

            self._update(
                periods=periods,
                error_message=None,
                last_periods_coordinate=coordinate,
            )
            await self._refresh_alerts(coordinate)
        finally:
            self._update(is_loading=False)

    async def _refresh_alerts(self, coordinate: Coordinate) -> None:
        try:
            alerts = await self.gateway.fetch_active_alerts(
                coordinate.latitude, coordinate.longitude
            )
        except WeatherGatewayError as exc:
            self.logger.warning(
                "Alerts fetch failed; keeping %d previous alerts: %s",
                len(self._state.alerts),
                exc,
                extra={"error_type": type(exc).__name__},
            )
            return

        self._update(alerts=alerts, last_alerts_coordinate=coordinate)
        await self.notify_on_new_alerts(alerts)

    def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self._state, name, value)
        snapshot = self._state.copy()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self.logger.exception("Refresh state listener raised")
