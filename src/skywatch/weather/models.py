"""Typed models for forecast periods, alerts, and observations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinate(BaseModel):
    """A latitude/longitude fix in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ForecastPeriod(BaseModel):
    """One half-day forecast period as published by the NWS."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    number: int
    name: str
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    is_daytime: bool = Field(alias="isDaytime")
    temperature: int | None = None
    temperature_unit: str | None = Field(default=None, alias="temperatureUnit")
    wind_speed: str | None = Field(default=None, alias="windSpeed")
    wind_direction: str | None = Field(default=None, alias="windDirection")
    icon: str | None = None
    short_forecast: str = Field(alias="shortForecast")
    detailed_forecast: str | None = Field(default=None, alias="detailedForecast")
    probability_of_precipitation: int | None = Field(
        default=None, alias="probabilityOfPrecipitation", ge=0, le=100
    )

    @field_validator("probability_of_precipitation", mode="before")
    @classmethod
    def unwrap_quantity(cls, value: Any) -> Any:
        """NWS nests the percentage as `{"unitCode": ..., "value": n}`."""
        if isinstance(value, dict):
            value = value.get("value")
        if isinstance(value, float):
            return round(value)
        return value


class AlertGeometry(BaseModel):
    """Loose GeoJSON geometry attached to an alert."""

    model_config = ConfigDict(frozen=True)

    type: str
    coordinates: list[Any] | None = None


class AlertFeature(BaseModel):
    """An active hazard alert, flattened from a GeoJSON feature."""

    model_config = ConfigDict(frozen=True)

    id: str
    event: str
    severity: str | None = None
    headline: str | None = None
    area_desc: str | None = None
    description: str | None = None
    instruction: str | None = None
    effective: str | None = None
    sent: str | None = None
    geometry: AlertGeometry | None = None

    @property
    def severity_level(self) -> str | None:
        """Lower-cased severity, e.g. "extreme", "severe", "moderate", "minor"."""
        return self.severity.lower() if self.severity else None


class DailyForecast(BaseModel):
    """A daytime period paired with the night that follows it."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    start_time: datetime
    day: ForecastPeriod
    night: ForecastPeriod | None = None


class CurrentObservation(BaseModel):
    """Latest reading from an observing station, in imperial units.

    NOAA stations routinely omit individual measurements, so every reading
    is optional. Wind speeds are whole mph and default to zero (calm).
    """

    source: Literal["noaa", "pws"]
    station_id: str
    station_name: str | None = None
    temperature_f: int | None = None
    humidity_pct: int | None = None
    wind_speed: int = 0
    wind_gust: int = 0
    wind_direction_degrees: int | None = None
    wind_direction_text: str | None = None
    pressure: str | None = None
    precip_total: str | None = None
    conditions: str | None = None
    station_latitude: float | None = None
    station_longitude: float | None = None
    observed_at: datetime | None = None
    last_updated: datetime

    @property
    def wind_display(self) -> str:
        """`CALM`, `Gust 12`, or `WNW 7 G12` style wind summary."""
        if self.wind_speed == 0 and self.wind_gust == 0:
            return "CALM"
        if self.wind_speed == 0:
            return f"Gust {self.wind_gust}"
        direction = f"{self.wind_direction_text} " if self.wind_direction_text else ""
        gust = f" G{self.wind_gust}" if self.wind_gust > self.wind_speed else ""
        return f"{direction}{self.wind_speed}{gust}"

    @property
    def is_partial(self) -> bool:
        """True when a headline reading is missing.

        PWS stations never report a sky description, so only NOAA
        observations count a missing `conditions` as partial.
        """
        return (
            self.temperature_f is None
            or self.humidity_pct is None
            or self.pressure is None
            or (self.source == "noaa" and not self.conditions)
        )
