from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable

from ..core.constants import EARTH_RADIUS_M
from ..core.exceptions import NoLocationConfigured, OutOfRange
from .model import Coordinate, Location

logger = logging.getLogger(__name__)


def haversine_distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two GPS points in meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def whole_meters(distance_m: float) -> int:
    """GPS distances are reported and compared in whole meters (half rounds up)."""
    return int(math.floor(distance_m + 0.5))


def is_admissible(distance_m: float, radius_m: float, tolerance_m: float) -> bool:
    return distance_m <= radius_m + tolerance_m


@dataclass(frozen=True)
class GeofenceMatch:
    location: Location
    distance_m: int


class GeofenceResolver:
    """Find the nearest admissible location for a probe coordinate.

    Tolerance is fixed at construction from the settings snapshot; the
    resolver itself is stateless and safe to share across threads.
    """

    def __init__(
        self,
        *,
        tolerance_m: float,
        distance_fn: Callable[[Coordinate, Coordinate], float] = haversine_distance_m,
    ):
        self._tolerance_m = float(tolerance_m)
        self._distance = distance_fn

    @property
    def tolerance_m(self) -> float:
        return self._tolerance_m

    def resolve(self, probe: Coordinate, locations: Iterable[Location]) -> GeofenceMatch:
        candidates = [loc for loc in locations if loc.is_active]
        if not candidates:
            raise NoLocationConfigured("No active attendance location is configured for this class")

        # Nearest first; equal distance prefers the larger radius, then the lowest id.
        ranked = sorted(
            ((whole_meters(self._distance(probe, loc.coordinate)), loc) for loc in candidates),
            key=lambda item: (item[0], -item[1].radius_m, item[1].location_id),
        )
        distance, nearest = ranked[0]

        if is_admissible(distance, nearest.radius_m, self._tolerance_m):
            logger.info(
                "Coordinate (%.6f, %.6f) admitted at %s: %dm of %.0fm radius (+%.0fm tolerance)",
                probe.latitude, probe.longitude, nearest.name, distance, nearest.radius_m, self._tolerance_m,
            )
            return GeofenceMatch(location=nearest, distance_m=distance)

        logger.warning(
            "Coordinate (%.6f, %.6f) outside every location; nearest %s at %dm (radius %.0fm, tolerance %.0fm)",
            probe.latitude, probe.longitude, nearest.name, distance, nearest.radius_m, self._tolerance_m,
        )
        raise OutOfRange(
            f"Outside the allowed area: nearest location {nearest.name} is {distance}m away",
            distance_m=distance,
            radius_m=nearest.radius_m,
            tolerance_m=self._tolerance_m,
            location_id=nearest.location_id,
        )
