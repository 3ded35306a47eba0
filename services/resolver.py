"""Nearest-sensor lookup by linear scan."""

from __future__ import annotations

import math
from typing import Iterable, Optional

from app.schemas import Sensor
from models.records import Point


def planar_distance(point: Point, latitude: float, longitude: float) -> float:
    """Cartesian distance on raw coordinates. Not a great-circle distance."""
    lat_delta = latitude - point.latitude
    lon_delta = longitude - point.longitude
    # products overflow to inf, unlike float ** 2 which raises
    return math.sqrt(lat_delta * lat_delta + lon_delta * lon_delta)


class NearestResolver:
    """Pure lookup component that can be unit tested in isolation."""

    def nearest(self, point: Point, sensors: Iterable[Sensor]) -> Optional[Sensor]:
        """Return the sensor closest to ``point``, or None for no candidates.

        Equidistant sensors resolve to the one seen first.
        """
        nearest: Optional[Sensor] = None
        smallest = math.inf

        for sensor in sensors:
            distance = planar_distance(point, sensor.latitude, sensor.longitude)
            if nearest is None or distance < smallest:
                nearest = sensor
                smallest = distance

        return nearest
