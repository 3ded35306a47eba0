"""Domain values shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Point:
    """A query location. Never persisted."""

    latitude: float
    longitude: float
