"""Pair half-day forecast periods into daily records."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from ..weather.models import DailyForecast, ForecastPeriod


def iter_daily_forecasts(periods: Sequence[ForecastPeriod]) -> Iterator[DailyForecast]:
    """Yield one record per daytime period, with the night that follows it.

    A leading night (no daytime period before it) is dropped. Two
    consecutive daytime periods each become a record without a night.
    """
    index = 0
    while index < len(periods):
        period = periods[index]
        if not period.is_daytime:
            index += 1
            continue

        following = periods[index + 1] if index + 1 < len(periods) else None
        night = following if following is not None and not following.is_daytime else None
        yield DailyForecast(
            id=period.number,
            name=period.name,
            start_time=period.start_time,
            day=period,
            night=night,
        )
        index += 2 if night is not None else 1


def combine_day_night(periods: Sequence[ForecastPeriod]) -> list[DailyForecast]:
    """List form of `iter_daily_forecasts`."""
    return list(iter_daily_forecasts(periods))
