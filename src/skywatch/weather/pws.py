"""Personal weather station (api.weather.com) current-conditions client."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..config import Settings
from ..exceptions import (
    DecodeError,
    InvalidEndpointError,
    MissingCredentialsError,
    NetworkError,
    UpstreamStatusError,
)
from ..redaction import redact_url, sanitize_text
from .models import CurrentObservation
from .units import compass_direction


class _Imperial(BaseModel):
    temp: float
    wind_speed: float = Field(alias="windSpeed")
    wind_gust: float = Field(alias="windGust")
    pressure: float
    precip_total: float = Field(alias="precipTotal")


class _Observation(BaseModel):
    station_id: str | None = Field(default=None, alias="stationID")
    winddir: float
    humidity: float
    imperial: _Imperial
    lat: float | None = None
    lon: float | None = None


class _ObservationsDocument(BaseModel):
    observations: list[_Observation]


class PWSCurrentConditionsClient:
    """Fetches the latest observation for a configured station."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._base_url = settings.pws_base_url
        self._client = httpx.AsyncClient(
            timeout=settings.pws_timeout_seconds,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Cache-Control": "no-cache",
                "Pragma": "no-cache",
            },
        )

    async def __aenter__(self) -> PWSCurrentConditionsClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_current(self) -> CurrentObservation:
        station_id = (self.settings.pws_station_id or "").strip()
        api_key = (self.settings.pws_api_key or "").strip()
        if not station_id or not api_key:
            raise MissingCredentialsError(
                "PWS_STATION_ID and PWS_API_KEY are required for current conditions."
            )

        try:
            url = httpx.URL(
                f"{self._base_url}/v2/pws/observations/current",
                params={"stationId": station_id, "format": "json", "units": "e", "apiKey": api_key},
            )
            self.logger.debug("PWS request %s", redact_url(url))
            response = await self._client.get(url)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidEndpointError(f"PWS URL rejected for base {self._base_url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"PWS request to {redact_url(url)} failed: "
                f"{type(exc).__name__}: {sanitize_text(str(exc))}"
            ) from exc

        if not response.is_success:
            raise UpstreamStatusError(
                f"PWS observations request failed with status {response.status_code}.",
                status_code=response.status_code,
            )
        try:
            document = _ObservationsDocument.model_validate(response.json())
        except ValueError as exc:
            # ValidationError is a ValueError subclass; both mean contract drift.
            detail = (
                f"{exc.error_count()} schema error(s)"
                if isinstance(exc, ValidationError)
                else "non-JSON body"
            )
            raise DecodeError(f"PWS observations payload unreadable: {detail}.") from exc
        if not document.observations:
            raise DecodeError(f"PWS station {station_id} returned no observations.")

        obs = document.observations[0]
        wind_degrees = int(obs.winddir)
        self.logger.debug("PWS observation fetched for station %s", station_id)
        return CurrentObservation(
            source="pws",
            station_id=obs.station_id or station_id,
            temperature_f=int(obs.imperial.temp),
            humidity_pct=int(obs.humidity),
            wind_speed=int(obs.imperial.wind_speed),
            wind_gust=int(obs.imperial.wind_gust),
            wind_direction_degrees=wind_degrees,
            wind_direction_text=compass_direction(wind_degrees),
            pressure=f"{obs.imperial.pressure:.2f}",
            precip_total=f"{obs.imperial.precip_total:.2f}",
            station_latitude=obs.lat,
            station_longitude=obs.lon,
            last_updated=datetime.now(UTC),
        )
