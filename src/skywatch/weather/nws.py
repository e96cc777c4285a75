"""NWS (api.weather.gov) forecast and alerts gateway."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import Settings
from ..exceptions import DecodeError, InvalidEndpointError, NetworkError, UpstreamStatusError
from ..redaction import sanitize_text
from .base import WeatherGateway
from .models import AlertFeature, AlertGeometry, CurrentObservation, ForecastPeriod
from .units import (
    compass_direction,
    pascals_to_inches_hg,
    speed_to_mph,
    temperature_to_fahrenheit,
)

_DocumentT = TypeVar("_DocumentT", bound=BaseModel)


class _PointsProperties(BaseModel):
    forecast: str | None = None
    forecast_hourly: str | None = Field(default=None, alias="forecastHourly")
    grid_id: str | None = Field(default=None, alias="gridId")
    observation_stations: str | None = Field(default=None, alias="observationStations")


class _PointsDocument(BaseModel):
    properties: _PointsProperties


class _ForecastProperties(BaseModel):
    periods: list[ForecastPeriod]


class _ForecastDocument(BaseModel):
    properties: _ForecastProperties


class _AlertProperties(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: str
    severity: str | None = None
    headline: str | None = None
    area_desc: str | None = Field(default=None, alias="areaDesc")
    description: str | None = None
    instruction: str | None = None
    effective: str | None = None
    sent: str | None = None


class _AlertFeatureDocument(BaseModel):
    id: str
    # NWS frequently returns `"geometry": null` for zone-based alerts.
    geometry: AlertGeometry | None = None
    properties: _AlertProperties


class _AlertsDocument(BaseModel):
    features: list[_AlertFeatureDocument]


class _StationProperties(BaseModel):
    station_identifier: str = Field(alias="stationIdentifier")
    name: str | None = None


class _StationFeature(BaseModel):
    geometry: AlertGeometry | None = None
    properties: _StationProperties


class _StationsDocument(BaseModel):
    # Ordered nearest-first by the provider.
    features: list[_StationFeature]


class _Measurement(BaseModel):
    value: float | None = None
    unit_code: str | None = Field(default=None, alias="unitCode")


class _ObservationProperties(BaseModel):
    timestamp: datetime | None = None
    temperature: _Measurement | None = None
    relative_humidity: _Measurement | None = Field(default=None, alias="relativeHumidity")
    wind_speed: _Measurement | None = Field(default=None, alias="windSpeed")
    wind_gust: _Measurement | None = Field(default=None, alias="windGust")
    wind_direction: _Measurement | None = Field(default=None, alias="windDirection")
    barometric_pressure: _Measurement | None = Field(default=None, alias="barometricPressure")
    text_description: str | None = Field(default=None, alias="textDescription")


class _ObservationDocument(BaseModel):
    properties: _ObservationProperties


def _reading(measurement: _Measurement | None) -> float | None:
    return measurement.value if measurement is not None else None


class NWSWeatherGateway(WeatherGateway):
    """Fetches forecast periods and active alerts from api.weather.gov."""

    provider_name = "nws"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._base_url = settings.nws_base_url
        self._client = httpx.AsyncClient(
            timeout=settings.weather_timeout_seconds,
            transport=transport,
            headers={
                "Accept": "application/geo+json",
                "User-Agent": settings.nws_user_agent,
                "Cache-Control": "no-cache",
                "Pragma": "no-cache",
            },
        )

    async def __aenter__(self) -> NWSWeatherGateway:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_forecast_periods(self, lat: float, lon: float) -> list[ForecastPeriod]:
        """Resolve the grid forecast URL for a point, then fetch its periods.

        The forecast URL is geospatially computed by the provider, so it is
        resolved fresh through `/points` on every call.
        """
        points = await self._fetch_points(lat, lon)
        if points.forecast is None:
            raise DecodeError("NWS points lookup returned no forecast URL.")
        forecast_url = self._validated_url(points.forecast, context="forecast")

        forecast_payload = await self._request_json(forecast_url, context="forecast fetch")
        forecast = self._decode(_ForecastDocument, forecast_payload, context="forecast fetch")
        periods = sorted(forecast.properties.periods, key=lambda period: period.number)
        self.logger.debug(
            "NWS forecast fetched: %d periods from %s", len(periods), forecast_url
        )
        return periods

    async def fetch_active_alerts(self, lat: float, lon: float) -> list[AlertFeature]:
        """Fetch active alerts whose area contains the point, in provider order."""
        alerts_url = f"{self._base_url}/alerts/active?point={self._format_point(lat, lon)}"
        payload = await self._request_json(alerts_url, context="alerts fetch")
        document = self._decode(_AlertsDocument, payload, context="alerts fetch")
        alerts = [
            AlertFeature(
                id=feature.id,
                event=feature.properties.event,
                severity=feature.properties.severity,
                headline=feature.properties.headline,
                area_desc=feature.properties.area_desc,
                description=feature.properties.description,
                instruction=feature.properties.instruction,
                effective=feature.properties.effective,
                sent=feature.properties.sent,
                geometry=feature.geometry,
            )
            for feature in document.features
        ]
        self.logger.debug("NWS alerts fetched: %d active", len(alerts))
        return alerts

    async def fetch_latest_observation(self, lat: float, lon: float) -> CurrentObservation:
        """Latest observation from the station nearest to the point.

        Resolves `/points` to its observation-station list, takes the first
        (nearest) station and reads `/stations/{id}/observations/latest`.
        Readings are converted from WMO units to imperial.
        """
        points = await self._fetch_points(lat, lon)
        if points.observation_stations is None:
            raise DecodeError("NWS points lookup returned no observation stations URL.")
        stations_url = self._validated_url(
            points.observation_stations, context="observation stations"
        )
        stations_payload = await self._request_json(stations_url, context="stations lookup")
        stations = self._decode(_StationsDocument, stations_payload, context="stations lookup")
        if not stations.features:
            raise DecodeError(f"NWS has no observation stations near ({lat:.4f}, {lon:.4f}).")

        station = stations.features[0]
        station_id = station.properties.station_identifier
        latest_url = f"{self._base_url}/stations/{station_id}/observations/latest"
        payload = await self._request_json(latest_url, context="latest observation")
        obs = self._decode(_ObservationDocument, payload, context="latest observation").properties

        temperature = _reading(obs.temperature)
        humidity = _reading(obs.relative_humidity)
        pressure = _reading(obs.barometric_pressure)
        wind = _reading(obs.wind_speed)
        gust = _reading(obs.wind_gust)
        wind_mph = round(speed_to_mph(wind, obs.wind_speed.unit_code)) if wind is not None else 0
        gust_mph = round(speed_to_mph(gust, obs.wind_gust.unit_code)) if gust is not None else 0
        bearing = _reading(obs.wind_direction)
        wind_degrees = round(bearing) if bearing is not None else None
        calm = wind_mph == 0 and gust_mph == 0

        geometry = station.geometry
        # GeoJSON points are [lon, lat].
        station_coords = (
            geometry.coordinates if geometry is not None and geometry.type == "Point" else None
        )
        self.logger.debug("NWS latest observation fetched from station %s", station_id)
        return CurrentObservation(
            source="noaa",
            station_id=station_id,
            station_name=station.properties.name,
            temperature_f=(
                round(temperature_to_fahrenheit(temperature, obs.temperature.unit_code))
                if temperature is not None
                else None
            ),
            humidity_pct=round(humidity) if humidity is not None else None,
            wind_speed=wind_mph,
            wind_gust=gust_mph,
            wind_direction_degrees=None if calm else wind_degrees,
            wind_direction_text=(
                compass_direction(wind_degrees)
                if not calm and wind_degrees is not None
                else None
            ),
            pressure=f"{pascals_to_inches_hg(pressure):.2f}" if pressure is not None else None,
            conditions=(obs.text_description or "").strip() or None,
            station_latitude=station_coords[1] if station_coords else None,
            station_longitude=station_coords[0] if station_coords else None,
            observed_at=obs.timestamp,
            last_updated=datetime.now(UTC),
        )

    async def _fetch_points(self, lat: float, lon: float) -> _PointsProperties:
        points_url = f"{self._base_url}/points/{self._format_point(lat, lon)}"
        points_payload = await self._request_json(points_url, context="points lookup")
        return self._decode(_PointsDocument, points_payload, context="points lookup").properties

    @staticmethod
    def _format_point(lat: float, lon: float) -> str:
        if not (isinstance(lat, (int, float)) and isinstance(lon, (int, float))):
            raise InvalidEndpointError("Coordinates must be numeric.")
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidEndpointError(f"Coordinates must be finite, got ({lat}, {lon}).")
        if not (-90 <= lat <= 90):
            raise InvalidEndpointError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise InvalidEndpointError(
                f"Invalid longitude {lon}; expected between -180 and 180."
            )
        # api.weather.gov redirects requests with more than four decimals.
        return f"{lat:.4f},{lon:.4f}"

    @staticmethod
    def _validated_url(raw: str, context: str) -> str:
        candidate = raw.strip()
        try:
            url = httpx.URL(candidate)
        except httpx.InvalidURL as exc:
            raise InvalidEndpointError(f"NWS {context} URL is malformed: {candidate!r}") from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise InvalidEndpointError(
                f"NWS {context} URL is not an absolute http(s) URL: {candidate!r}"
            )
        return candidate

    async def _request_json(self, url: str, context: str) -> Any:
        try:
            response = await self._client.get(url)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidEndpointError(f"NWS {context} URL rejected: {url}") from exc
        except httpx.HTTPError as exc:
            # Timeouts, connect errors, protocol errors. No retry: the next
            # externally-triggered refresh is the retry.
            raise NetworkError(
                f"NWS {context} request failed at {url}: "
                f"{type(exc).__name__}: {sanitize_text(str(exc))}"
            ) from exc

        if not response.is_success:
            raise UpstreamStatusError(
                f"NWS {context} failed with status {response.status_code} "
                f"at {url}: {sanitize_text(response.text[:300])}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"NWS {context} returned non-JSON response at {url}.") from exc

    @staticmethod
    def _decode(model: type[_DocumentT], payload: Any, context: str) -> _DocumentT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise DecodeError(
                f"NWS {context} payload did not match the expected schema: "
                f"{exc.error_count()} error(s), first: {exc.errors()[0]['msg']}"
            ) from exc
