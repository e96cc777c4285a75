"""Text helpers for presenting forecast periods."""

from __future__ import annotations

from typing import Literal

from ..weather.models import ForecastPeriod

ConditionKind = Literal[
    "thunderstorm",
    "mixed",
    "ice",
    "snow",
    "fog",
    "rain",
    "partly_cloudy",
    "cloudy",
    "clear",
    "unknown",
]

_WEEKDAY_ABBREVIATIONS = {
    "monday": "Mon",
    "tuesday": "Tue",
    "wednesday": "Wed",
    "thursday": "Thu",
    "friday": "Fri",
    "saturday": "Sat",
    "sunday": "Sun",
}

_THUNDER_WORDS = ("thunder", "t-storm", "tstorm", "storm")
_WINTRY_WORDS = (
    "snow", "flurr", "sleet", "wintry", "ice", "freezing", "blizzard",
)
_FOG_WORDS = ("fog", "haze", "smoke", "mist")
_RAIN_WORDS = ("shower", "rain", "drizzle")
_PARTLY_WORDS = ("mostly cloudy", "partly cloudy", "partly sunny", "mostly sunny")


def precipitation_text(period: ForecastPeriod) -> str | None:
    """Chance of precipitation rounded to the nearest 10%, or None if negligible."""
    value = period.probability_of_precipitation
    if value is None:
        return None
    rounded = ((value + 5) // 10) * 10
    if rounded <= 0:
        return None
    return f"{rounded}%"


def abbreviated_day_name(name: str) -> str:
    """Shorten weekday names ("Monday" -> "Mon"); leave others like "Tonight" intact."""
    trimmed = name.strip()
    return _WEEKDAY_ABBREVIATIONS.get(trimmed.lower(), trimmed)


def classify_conditions(short_forecast: str, detailed_forecast: str | None = None) -> ConditionKind:
    """Bucket forecast text into a coarse condition kind.

    The detailed text is included because NWS sometimes only mentions snow
    there. Severe and wintry wording outrank rain.
    """
    text = f"{short_forecast} {detailed_forecast or ''}".lower()

    if any(word in text for word in _THUNDER_WORDS):
        return "thunderstorm"
    if any(word in text for word in _WINTRY_WORDS):
        if "rain" in text and "snow" in text:
            return "mixed"
        if "freezing rain" in text or "freezing drizzle" in text:
            return "ice"
        return "snow"
    if any(word in text for word in _FOG_WORDS):
        return "fog"
    if any(word in text for word in _RAIN_WORDS):
        return "rain"
    if any(word in text for word in _PARTLY_WORDS):
        return "partly_cloudy"
    if "cloudy" in text or "overcast" in text:
        return "cloudy"
    if "clear" in text or "sunny" in text:
        return "clear"
    return "unknown"
