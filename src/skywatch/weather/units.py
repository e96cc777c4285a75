"""Unit conversions for station observations.

NWS observations carry WMO unit codes such as `wmoUnit:degC`, `wmoUnit:Pa`
and `wmoUnit:km_h-1`; everything is converted to the imperial units the
presentation layer shows.
"""

from __future__ import annotations

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)

MPS_TO_MPH = 2.2369362920544
KMH_TO_MPH = 0.621371192237334
KNOTS_TO_MPH = 1.150779448
PA_TO_INHG = 0.000295299830714


def compass_direction(degrees: float) -> str:
    """Map a bearing in degrees to a 16-point compass label."""
    index = round(degrees / 22.5) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def _unit_name(unit_code: str | None) -> str:
    # "wmoUnit:km_h-1" -> "km_h-1"
    return (unit_code or "").rsplit(":", 1)[-1]


def temperature_to_fahrenheit(value: float, unit_code: str | None = None) -> float:
    if _unit_name(unit_code) == "degF":
        return value
    return value * 9.0 / 5.0 + 32.0


def speed_to_mph(value: float, unit_code: str | None = None) -> float:
    """Convert a wind speed to mph; unlabeled values are taken as m/s."""
    unit = _unit_name(unit_code)
    if unit == "km_h-1":
        return value * KMH_TO_MPH
    if unit in {"kn", "kt"}:
        return value * KNOTS_TO_MPH
    if unit == "mph":
        return value
    return value * MPS_TO_MPH


def pascals_to_inches_hg(value: float) -> float:
    return value * PA_TO_INHG
