"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class Sensor(BaseModel):
    """A physical sensor as stored and exchanged over HTTP."""

    name: str = Field(..., min_length=1, description="Unique sensor name.")
    latitude: float = Field(..., allow_inf_nan=False)
    longitude: float = Field(..., allow_inf_nan=False)
    tags: List[str] = Field(..., description="Free-form labels; order is not significant.")


class SensorResponse(BaseModel):
    """Envelope for endpoints returning a single sensor."""

    success: bool = False
    sensor: Optional[Sensor] = None
    error_msg: str = ""


class SensorListResponse(BaseModel):
    """Envelope for the list endpoint. The ``sensor`` key holds the list."""

    success: bool = False
    sensor: Optional[List[Sensor]] = None
    error_msg: str = ""
