"""Terminal driver: refresh forecast + alerts for a location and print them."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from .alerts.ledger import AlertLedger
from .alerts.notifier import LoggingNotificationSink
from .config import Settings, load_settings
from .exceptions import ConfigError, StoreError, WeatherGatewayError
from .favorites import FavoriteLocation, FavoritesStore
from .forecast.display import abbreviated_day_name, classify_conditions, precipitation_text
from .forecast.reconciler import (
    CURRENT_CONDITIONS_UNAVAILABLE_MESSAGE,
    ForecastReconciler,
    RefreshState,
    user_facing_message,
)
from .log_setup import setup_logger
from .storage import JsonFileStore
from .weather.models import AlertFeature, Coordinate, CurrentObservation, DailyForecast
from .weather.nws import NWSWeatherGateway
from .weather.pws import PWSCurrentConditionsClient


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse weather CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch the NWS forecast and active alerts for a location."
    )
    parser.add_argument("--lat", type=float, default=None, help="Latitude in degrees.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude in degrees.")
    parser.add_argument(
        "--favorite",
        type=str,
        default=None,
        help="Use a saved favorite (matched by title) instead of --lat/--lon.",
    )
    parser.add_argument(
        "--save-favorite",
        type=str,
        default=None,
        metavar="TITLE",
        help="Save the resolved coordinate as a favorite with this title.",
    )
    parser.add_argument(
        "--max-days",
        type=int,
        default=7,
        help="Number of daily records to print.",
    )
    parser.add_argument(
        "--watch",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Keep running and re-check every SECONDS (debounced).",
    )
    parser.add_argument(
        "--current",
        action="store_true",
        help="Also show current conditions from the nearest NOAA station or your PWS.",
    )
    parser.add_argument(
        "--current-source",
        choices=("noaa", "pws"),
        default=None,
        help="Override CURRENT_CONDITIONS_SOURCE for --current.",
    )
    parser.add_argument(
        "--clear-alert-history",
        action="store_true",
        help="Forget which alerts were already notified, then exit.",
    )
    return parser.parse_args(argv)


def _resolve_coords(
    args: argparse.Namespace, settings: Settings
) -> tuple[float | None, float | None]:
    lat = args.lat if args.lat is not None else settings.weather_default_lat
    lon = args.lon if args.lon is not None else settings.weather_default_lon
    return lat, lon


def _validate_cli_input(
    args: argparse.Namespace,
    settings: Settings,
    favorites: FavoritesStore | None = None,
) -> Coordinate:
    if args.max_days <= 0:
        raise ConfigError("--max-days must be > 0.")
    if args.watch is not None and args.watch <= 0:
        raise ConfigError("--watch must be > 0 seconds when provided.")

    if args.favorite:
        if args.lat is not None or args.lon is not None:
            raise ConfigError("Use either --favorite or --lat/--lon, not both.")
        matches = [
            fav
            for fav in (favorites.favorites if favorites else [])
            if fav.title.casefold() == args.favorite.casefold()
        ]
        if not matches:
            raise ConfigError(f"No saved favorite titled {args.favorite!r}.")
        return matches[0].coordinate

    lat, lon = _resolve_coords(args, settings)
    if lat is None or lon is None:
        raise ConfigError(
            "Missing location input: pass --lat and --lon, set "
            "WEATHER_DEFAULT_LAT/LON, or use --favorite."
        )
    if not (-90 <= lat <= 90):
        raise ConfigError(f"Invalid latitude {lat}; expected between -90 and 90.")
    if not (-180 <= lon <= 180):
        raise ConfigError(f"Invalid longitude {lon}; expected between -180 and 180.")
    return Coordinate(latitude=lat, longitude=lon)


def _print_daily_table(console: Console, daily: list[DailyForecast]) -> None:
    if not daily:
        console.print("No forecast periods found.")
        return

    table = Table(title="NWS Daily Forecast")
    table.add_column("Day")
    table.add_column("High")
    table.add_column("Low")
    table.add_column("Precip")
    table.add_column("Conditions", overflow="fold")

    for record in daily:
        day, night = record.day, record.night
        high = (
            f"{day.temperature}°{day.temperature_unit or ''}"
            if day.temperature is not None
            else "-"
        )
        low = (
            f"{night.temperature}°{night.temperature_unit or ''}"
            if night is not None and night.temperature is not None
            else "-"
        )
        kind = classify_conditions(day.short_forecast, day.detailed_forecast)
        table.add_row(
            abbreviated_day_name(record.name),
            high,
            low,
            precipitation_text(day) or "-",
            f"{day.short_forecast} [dim]({kind})[/dim]",
        )
    console.print(table)


def _print_alerts(console: Console, alerts: list[AlertFeature]) -> None:
    if not alerts:
        console.print("No active alerts.")
        return

    table = Table(title="Active Alerts")
    table.add_column("Event")
    table.add_column("Severity")
    table.add_column("Headline", overflow="fold")
    for alert in alerts:
        table.add_row(alert.event, alert.severity or "-", alert.headline or alert.area_desc or "-")
    console.print(table)


def _reading(value: object, suffix: str = "") -> str:
    return f"{value}{suffix}" if value is not None else "-"


def _print_current(console: Console, observation: CurrentObservation) -> None:
    station = observation.station_name or observation.station_id
    parts = [
        _reading(observation.temperature_f, "°F"),
        f"humidity {_reading(observation.humidity_pct, '%')}",
        f"wind {observation.wind_display}",
        f"pressure {_reading(observation.pressure, ' inHg')}",
    ]
    if observation.precip_total is not None:
        parts.append(f"precip {observation.precip_total}")
    if observation.conditions:
        parts.insert(0, observation.conditions)
    console.print(f"Current ({observation.source.upper()} {station}): " + ", ".join(parts))
    if observation.is_partial:
        console.print("[dim]Some readings are unavailable from this station.[/dim]")


async def _fetch_current(
    source: str,
    gateway: NWSWeatherGateway,
    settings: Settings,
    logger: logging.Logger,
    coordinate: Coordinate,
) -> CurrentObservation:
    if source == "pws":
        async with PWSCurrentConditionsClient(settings=settings, logger=logger) as pws:
            return await pws.fetch_current()
    return await gateway.fetch_latest_observation(coordinate.latitude, coordinate.longitude)


def _print_state(
    console: Console,
    reconciler: ForecastReconciler,
    state: RefreshState,
    max_days: int,
) -> None:
    if state.error_message:
        console.print(f"[red]{state.error_message}[/red]")
    _print_daily_table(console, reconciler.daily_forecast(max_days=max_days))
    _print_alerts(console, state.alerts)


async def _run(
    args: argparse.Namespace,
    settings: Settings,
    coordinate: Coordinate,
    store: JsonFileStore,
    console: Console,
) -> int:
    logger = setup_logger(level=settings.log_level)
    ledger = AlertLedger(store)
    notifier = LoggingNotificationSink(logger)

    async with NWSWeatherGateway(settings=settings, logger=logger) as gateway:
        reconciler = ForecastReconciler(
            gateway=gateway,
            ledger=ledger,
            notifier=notifier,
            settings=settings,
            logger=logger,
        )
        reconciler.subscribe(
            lambda state: logger.debug(
                "Refresh state changed",
                extra={
                    "is_loading": state.is_loading,
                    "periods": len(state.periods),
                    "alerts": len(state.alerts),
                    "error_message": state.error_message,
                },
            )
        )

        state = await reconciler.refresh(coordinate)
        _print_state(console, reconciler, state, args.max_days)

        if args.current:
            source = args.current_source or settings.current_conditions_source
            try:
                _print_current(
                    console, await _fetch_current(source, gateway, settings, logger, coordinate)
                )
            except WeatherGatewayError as exc:
                logger.warning(
                    "Current conditions fetch failed: %s", exc, extra={"source": source}
                )
                message = user_facing_message(
                    exc, default=CURRENT_CONDITIONS_UNAVAILABLE_MESSAGE, keyed=source == "pws"
                )
                console.print(f"[yellow]{message}[/yellow]")

        if args.watch is None:
            return 0 if state.error_message is None else 4

        # Stands in for a platform background trigger.
        while True:
            await asyncio.sleep(args.watch)
            previous = reconciler.state
            state = await reconciler.load_if_needed(coordinate)
            if state.periods != previous.periods or state.alerts != previous.alerts:
                _print_state(console, reconciler, state, args.max_days)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the forecast refresh flow."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
        store = JsonFileStore(settings.state_store_path)
    except (ConfigError, StoreError) as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger.setLevel(settings.log_level)
    logger.info("Starting skywatch", extra={"config": settings.safe_summary()})

    if args.clear_alert_history:
        AlertLedger(store).clear_all()
        console.print("Alert notification history cleared.")
        return 0

    try:
        favorites = FavoritesStore(store, logger=logger)
        coordinate = _validate_cli_input(args, settings, favorites)
        if args.save_favorite:
            added = favorites.add(
                FavoriteLocation(
                    title=args.save_favorite,
                    latitude=coordinate.latitude,
                    longitude=coordinate.longitude,
                )
            )
            console.print(
                f"Saved favorite {args.save_favorite!r}."
                if added
                else f"Favorite {args.save_favorite!r} already saved."
            )
        return asyncio.run(_run(args, settings, coordinate, store, console))
    except ConfigError as exc:
        logger.error("Invalid input: %s", exc)
        return 2
    except StoreError as exc:
        logger.error("State store failure: %s", exc)
        return 3
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting")
        return 0
    except Exception as exc:  # pragma: no cover - defensive catch for CLI runtime
        logger.exception("Unexpected weather CLI failure: %s", exc)
        return 99


if __name__ == "__main__":
    sys.exit(main())
