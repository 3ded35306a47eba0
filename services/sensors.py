"""Coordination between the HTTP layer, the store and the resolver."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from app.schemas import Sensor
from datastore.sensor_store import SensorStore, build_default_store
from models.records import Point
from services.resolver import NearestResolver

logger = logging.getLogger(__name__)


class SensorService:
    """Thin facade the request handlers depend on.

    Store errors pass through unchanged; translating them for clients is the
    caller's job.
    """

    def __init__(self, store: SensorStore, resolver: NearestResolver) -> None:
        self.store = store
        self.resolver = resolver

    def start(self) -> None:
        self.store.create_schema()

    def shutdown(self) -> None:
        self.store.close()

    def list_sensors(self) -> list[Sensor]:
        return self.store.list_sensors()

    def create_sensor(self, sensor: Sensor) -> Sensor:
        return self.store.insert_sensor(sensor)

    def get_sensor(self, name: str) -> Sensor:
        return self.store.get_sensor_by_name(name)

    def update_sensor(self, old_name: str, sensor: Sensor) -> Sensor:
        return self.store.update_sensor(old_name, sensor)

    def delete_sensor(self, name: str) -> Sensor:
        return self.store.delete_sensor(name)

    def nearest_to(self, point: Point) -> Optional[Sensor]:
        sensors = self.store.list_sensors()
        nearest = self.resolver.nearest(point, sensors)
        logger.debug(
            "Resolved nearest sensor",
            extra={
                "latitude": point.latitude,
                "longitude": point.longitude,
                "row_count": len(sensors),
                "sensor_name": nearest.name if nearest else None,
            },
        )
        return nearest


@lru_cache
def build_default_service() -> SensorService:
    """Factory that wires the service with the configured database."""
    return SensorService(store=build_default_store(), resolver=NearestResolver())
