"""Forecast refresh pipeline and presentation helpers."""

from .combiner import combine_day_night, iter_daily_forecasts
from .debounce import COORDINATE_JITTER_DEGREES, should_skip
from .display import abbreviated_day_name, classify_conditions, precipitation_text
from .reconciler import (
    FORECAST_UNAVAILABLE_MESSAGE,
    ForecastReconciler,
    RefreshState,
    user_facing_message,
)

__all__ = [
    "COORDINATE_JITTER_DEGREES",
    "FORECAST_UNAVAILABLE_MESSAGE",
    "ForecastReconciler",
    "RefreshState",
    "abbreviated_day_name",
    "classify_conditions",
    "combine_day_night",
    "iter_daily_forecasts",
    "precipitation_text",
    "should_skip",
    "user_facing_message",
]
