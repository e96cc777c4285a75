"""Provider-agnostic weather gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import AlertFeature, ForecastPeriod


class WeatherGateway(ABC):
    """Base contract for the forecast and alerts fetches used by the reconciler."""

    @abstractmethod
    async def fetch_forecast_periods(self, lat: float, lon: float) -> list[ForecastPeriod]:
        """Fetch the half-day forecast periods for a coordinate."""

    @abstractmethod
    async def fetch_active_alerts(self, lat: float, lon: float) -> list[AlertFeature]:
        """Fetch currently active alerts covering a coordinate."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release gateway resources."""
