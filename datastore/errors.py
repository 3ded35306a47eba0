"""Failure modes surfaced by the sensor store."""

from __future__ import annotations

from typing import Optional


class SensorStoreError(Exception):
    """Base class for every store failure."""

    def __init__(self, message: str, sensor_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.sensor_name = sensor_name


class StoreUnavailable(SensorStoreError):
    """The backend could not be reached or the connection dropped."""


class DuplicateName(SensorStoreError):
    """An insert or rename collided with an existing sensor name."""


class NotFound(SensorStoreError):
    """No sensor matches the requested name."""


class ConstraintViolation(SensorStoreError):
    """A required field was missing or malformed."""


class QueryFailed(SensorStoreError):
    """Any other backend error."""
