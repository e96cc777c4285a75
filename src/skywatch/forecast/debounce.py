"""GPS-jitter gate for forecast and alert refetches."""

from __future__ import annotations

from ..weather.models import Coordinate

# ~1.1 km at the equator. A per-axis box, not a geodesic distance.
COORDINATE_JITTER_DEGREES = 0.01


def should_skip(last_used: Coordinate | None, candidate: Coordinate, have_data: bool) -> bool:
    """Return True when `candidate` is too close to `last_used` to refetch.

    Skipping also requires data from the previous fetch to still be held;
    an empty track always refetches.
    """
    if last_used is None or not have_data:
        return False
    return (
        abs(last_used.latitude - candidate.latitude) < COORDINATE_JITTER_DEGREES
        and abs(last_used.longitude - candidate.longitude) < COORDINATE_JITTER_DEGREES
    )
