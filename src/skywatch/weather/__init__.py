"""Weather provider integrations."""

from .base import WeatherGateway
from .models import (
    AlertFeature,
    AlertGeometry,
    Coordinate,
    CurrentObservation,
    DailyForecast,
    ForecastPeriod,
)
from .nws import NWSWeatherGateway
from .pws import PWSCurrentConditionsClient

__all__ = [
    "AlertFeature",
    "AlertGeometry",
    "Coordinate",
    "CurrentObservation",
    "DailyForecast",
    "ForecastPeriod",
    "NWSWeatherGateway",
    "PWSCurrentConditionsClient",
    "WeatherGateway",
]
