"""Tests for the NWS gateway request flow, decoding, and error taxonomy."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from skywatch.exceptions import (
    DecodeError,
    InvalidEndpointError,
    NetworkError,
    UpstreamStatusError,
    WeatherGatewayError,
)
from skywatch.weather.models import AlertFeature, CurrentObservation, ForecastPeriod
from skywatch.weather.nws import NWSWeatherGateway

FORECAST_URL = "https://api.weather.gov/gridpoints/PHI/50,76/forecast"

Handler = Callable[[httpx.Request], httpx.Response]


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "nws_base_url": "https://api.weather.gov",
        "weather_timeout_seconds": 5.0,
        "nws_user_agent": "skywatch-tests/0.1 (contact: test@example.com)",
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _period_payload(number: int, name: str, is_daytime: bool, **extra: Any) -> dict[str, Any]:
    payload = {
        "number": number,
        "name": name,
        "startTime": "2026-02-24T06:00:00-05:00",
        "endTime": "2026-02-24T18:00:00-05:00",
        "isDaytime": is_daytime,
        "temperature": 41,
        "temperatureUnit": "F",
        "windSpeed": "8 mph",
        "windDirection": "NW",
        "shortForecast": "Partly Cloudy",
        "detailedForecast": "Partly cloudy with a slight chance of rain.",
        "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": 20},
    }
    payload.update(extra)
    return payload


def _points_payload(forecast_url: str = FORECAST_URL) -> dict[str, Any]:
    return {
        "properties": {
            "forecast": forecast_url,
            "forecastHourly": forecast_url + "/hourly",
            "gridId": "PHI",
            "observationStations": "https://api.weather.gov/gridpoints/PHI/50,76/stations",
        }
    }


def _forecast_handler(
    forecast_payload: dict[str, Any],
    seen: list[httpx.Request] | None = None,
) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path.startswith("/points/"):
            return httpx.Response(200, json=_points_payload())
        if str(request.url) == FORECAST_URL:
            return httpx.Response(200, json=forecast_payload)
        return httpx.Response(404, json={"detail": "not found"})

    return handler


def _gateway(handler: Handler) -> NWSWeatherGateway:
    return NWSWeatherGateway(
        settings=_make_settings(),
        logger=logging.getLogger("test_nws_gateway"),
        transport=httpx.MockTransport(handler),
    )


def _fetch_periods(handler: Handler, lat: float = 39.90, lon: float = -75.17) -> list[ForecastPeriod]:
    async def run() -> list[ForecastPeriod]:
        async with _gateway(handler) as gateway:
            return await gateway.fetch_forecast_periods(lat, lon)

    return asyncio.run(run())


def _fetch_alerts(handler: Handler, lat: float = 39.90, lon: float = -75.17) -> list[AlertFeature]:
    async def run() -> list[AlertFeature]:
        async with _gateway(handler) as gateway:
            return await gateway.fetch_active_alerts(lat, lon)

    return asyncio.run(run())


def test_points_then_forecast_flow_decodes_periods() -> None:
    seen: list[httpx.Request] = []
    forecast = {
        "properties": {
            "periods": [
                _period_payload(1, "Today", True),
                _period_payload(2, "Tonight", False, temperature=30),
            ]
        }
    }

    periods = _fetch_periods(_forecast_handler(forecast, seen))

    assert [request.url.path for request in seen] == [
        "/points/39.9000,-75.1700",
        "/gridpoints/PHI/50,76/forecast",
    ]
    assert len(periods) == 2
    today = periods[0]
    assert today.name == "Today"
    assert today.is_daytime is True
    assert today.temperature == 41
    assert today.temperature_unit == "F"
    assert today.probability_of_precipitation == 20
    assert today.wind_direction == "NW"
    assert today.start_time.tzinfo is not None
    assert periods[1].temperature == 30


def test_requests_carry_user_agent_accept_and_no_cache_headers() -> None:
    seen: list[httpx.Request] = []
    forecast = {"properties": {"periods": [_period_payload(1, "Today", True)]}}

    _fetch_periods(_forecast_handler(forecast, seen))

    for request in seen:
        assert request.headers["User-Agent"].startswith("skywatch-tests/")
        assert request.headers["Accept"] == "application/geo+json"
        assert request.headers["Cache-Control"] == "no-cache"


def test_periods_are_returned_sorted_by_number() -> None:
    forecast = {
        "properties": {
            "periods": [
                _period_payload(3, "Tuesday", True),
                _period_payload(1, "Today", True),
                _period_payload(2, "Tonight", False),
            ]
        }
    }

    periods = _fetch_periods(_forecast_handler(forecast))

    assert [period.number for period in periods] == [1, 2, 3]


def test_null_precipitation_value_decodes_as_none() -> None:
    forecast = {
        "properties": {
            "periods": [
                _period_payload(
                    1,
                    "Today",
                    True,
                    probabilityOfPrecipitation={"unitCode": "wmoUnit:percent", "value": None},
                    temperature=None,
                    detailedForecast=None,
                )
            ]
        }
    }

    periods = _fetch_periods(_forecast_handler(forecast))

    assert periods[0].probability_of_precipitation is None
    assert periods[0].temperature is None
    assert periods[0].detailed_forecast is None


def test_points_non_2xx_raises_upstream_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal Server Error")

    with pytest.raises(UpstreamStatusError) as excinfo:
        _fetch_periods(handler)
    assert excinfo.value.status_code == 500


def test_forecast_non_2xx_raises_upstream_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/points/"):
            return httpx.Response(200, json=_points_payload())
        return httpx.Response(503, text="Service Unavailable")

    with pytest.raises(UpstreamStatusError) as excinfo:
        _fetch_periods(handler)
    assert excinfo.value.status_code == 503


def test_non_json_body_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    with pytest.raises(DecodeError, match="non-JSON"):
        _fetch_periods(handler)


def test_malformed_periods_raise_decode_error() -> None:
    forecast = {"properties": {"periods": "not-a-list"}}

    with pytest.raises(DecodeError, match="expected schema"):
        _fetch_periods(_forecast_handler(forecast))


def test_points_payload_missing_forecast_url_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"properties": {}})

    with pytest.raises(DecodeError):
        _fetch_periods(handler)


def test_relative_forecast_url_raises_invalid_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_points_payload(forecast_url="/gridpoints/PHI/1,1"))

    with pytest.raises(InvalidEndpointError):
        _fetch_periods(handler)


@pytest.mark.parametrize(
    ("lat", "lon"),
    [
        (91.0, -75.0),
        (39.0, -181.0),
        (float("nan"), -75.0),
        (39.0, float("inf")),
    ],
)
def test_unbuildable_coordinates_raise_invalid_endpoint(lat: float, lon: float) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("no request expected")

    with pytest.raises(InvalidEndpointError):
        _fetch_periods(handler, lat=lat, lon=lon)


def test_transport_failure_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError, match="ConnectError"):
        _fetch_periods(handler)


def test_alerts_fetch_decodes_features_in_provider_order() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "id": "https://api.weather.gov/alerts/urn:oid:2.49.0.1.840.0.b",
                "type": "Feature",
                "geometry": None,
                "properties": {
                    "event": "Winter Storm Warning",
                    "severity": "Severe",
                    "headline": "Winter Storm Warning issued February 24",
                    "areaDesc": "Philadelphia",
                    "description": "Heavy snow expected.",
                    "instruction": "Travel could be very difficult.",
                    "effective": "2026-02-24T10:00:00-05:00",
                    "sent": "2026-02-24T09:58:00-05:00",
                },
            },
            {
                "id": "https://api.weather.gov/alerts/urn:oid:2.49.0.1.840.0.a",
                "type": "Feature",
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[-75.2, 39.9], [-75.1, 39.9], [-75.1, 40.0]]],
                },
                "properties": {"event": "Wind Advisory", "severity": None},
            },
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    alerts = _fetch_alerts(handler)

    assert seen[0].url.path == "/alerts/active"
    assert seen[0].url.params["point"] == "39.9000,-75.1700"
    assert [alert.event for alert in alerts] == ["Winter Storm Warning", "Wind Advisory"]
    first, second = alerts
    assert first.geometry is None
    assert first.severity_level == "severe"
    assert first.area_desc == "Philadelphia"
    assert first.instruction == "Travel could be very difficult."
    assert first.effective == "2026-02-24T10:00:00-05:00"
    assert second.geometry is not None
    assert second.geometry.type == "Polygon"
    assert second.headline is None
    assert second.severity_level is None


def test_alerts_empty_feature_list_is_not_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps({"features": []}).encode())

    assert _fetch_alerts(handler) == []


def test_alerts_non_2xx_raises_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="Too Many Requests")

    with pytest.raises(WeatherGatewayError) as excinfo:
        _fetch_alerts(handler)
    assert isinstance(excinfo.value, UpstreamStatusError)
    assert excinfo.value.status_code == 429


STATIONS_URL = "https://api.weather.gov/gridpoints/PHI/50,76/stations"


def _measurement(value: float | None, unit: str) -> dict[str, Any]:
    return {"unitCode": f"wmoUnit:{unit}", "value": value, "qualityControl": "V"}


def _observation_payload(**overrides: Any) -> dict[str, Any]:
    properties = {
        "timestamp": "2026-02-24T14:54:00+00:00",
        "textDescription": " Mostly Cloudy ",
        "temperature": _measurement(5.0, "degC"),
        "relativeHumidity": _measurement(63.4, "percent"),
        "windSpeed": _measurement(18.0, "km_h-1"),
        "windGust": _measurement(29.0, "km_h-1"),
        "windDirection": _measurement(290, "degree_(angle)"),
        "barometricPressure": _measurement(101590, "Pa"),
    }
    properties.update(overrides)
    return {"properties": properties}


def _stations_payload(*station_ids: str) -> dict[str, Any]:
    return {
        "features": [
            {
                "geometry": {"type": "Point", "coordinates": [-75.23, 39.87]},
                "properties": {
                    "stationIdentifier": station_id,
                    "name": f"{station_id} Airport",
                },
            }
            for station_id in station_ids
        ]
    }


def _observation_handler(
    stations: dict[str, Any] | None = None,
    observation: dict[str, Any] | None = None,
    seen: list[httpx.Request] | None = None,
    stations_status: int = 200,
) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path.startswith("/points/"):
            return httpx.Response(200, json=_points_payload())
        if str(request.url) == STATIONS_URL:
            if stations_status != 200:
                return httpx.Response(stations_status, text="unavailable")
            return httpx.Response(200, json=stations or _stations_payload("KPHL", "KPNE"))
        if request.url.path.endswith("/observations/latest"):
            return httpx.Response(200, json=observation or _observation_payload())
        return httpx.Response(404, json={"detail": "not found"})

    return handler


def _fetch_observation(handler: Handler) -> CurrentObservation:
    async def run() -> CurrentObservation:
        async with _gateway(handler) as gateway:
            return await gateway.fetch_latest_observation(39.90, -75.17)

    return asyncio.run(run())


def test_latest_observation_uses_nearest_station_and_converts_units() -> None:
    seen: list[httpx.Request] = []

    observation = _fetch_observation(_observation_handler(seen=seen))

    assert [request.url.path for request in seen] == [
        "/points/39.9000,-75.1700",
        "/gridpoints/PHI/50,76/stations",
        "/stations/KPHL/observations/latest",
    ]
    assert observation.source == "noaa"
    assert observation.station_id == "KPHL"
    assert observation.station_name == "KPHL Airport"
    assert (observation.station_latitude, observation.station_longitude) == (39.87, -75.23)
    assert observation.temperature_f == 41
    assert observation.humidity_pct == 63
    assert observation.wind_speed == 11
    assert observation.wind_gust == 18
    assert observation.wind_direction_text == "WNW"
    assert observation.wind_display == "WNW 11 G18"
    assert observation.pressure == "30.00"
    assert observation.precip_total is None
    assert observation.conditions == "Mostly Cloudy"
    assert observation.is_partial is False


def test_latest_observation_calm_wind_drops_direction() -> None:
    payload = _observation_payload(
        windSpeed=_measurement(0, "km_h-1"),
        windGust=_measurement(None, "km_h-1"),
        windDirection=_measurement(0, "degree_(angle)"),
    )

    observation = _fetch_observation(_observation_handler(observation=payload))

    assert observation.wind_display == "CALM"
    assert observation.wind_direction_text is None
    assert observation.wind_direction_degrees is None


def test_latest_observation_missing_readings_are_partial() -> None:
    payload = _observation_payload(
        temperature=_measurement(None, "degC"),
        barometricPressure=None,
        textDescription=None,
    )

    observation = _fetch_observation(_observation_handler(observation=payload))

    assert observation.temperature_f is None
    assert observation.pressure is None
    assert observation.conditions is None
    assert observation.humidity_pct == 63
    assert observation.is_partial is True


def test_latest_observation_without_stations_raises_decode_error() -> None:
    handler = _observation_handler(stations={"features": []})

    with pytest.raises(DecodeError, match="no observation stations"):
        _fetch_observation(handler)


def test_latest_observation_stations_non_2xx_raises_upstream_status() -> None:
    with pytest.raises(UpstreamStatusError) as excinfo:
        _fetch_observation(_observation_handler(stations_status=503))
    assert excinfo.value.status_code == 503


def test_points_without_observation_stations_raise_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"properties": {"forecast": FORECAST_URL}})

    with pytest.raises(DecodeError, match="observation stations URL"):
        _fetch_observation(handler)
