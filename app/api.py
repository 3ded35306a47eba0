"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.schemas import Sensor, SensorListResponse, SensorResponse
from datastore.errors import (
    ConstraintViolation,
    DuplicateName,
    NotFound,
    QueryFailed,
    SensorStoreError,
    StoreUnavailable,
)
from models.records import Point
from services.sensors import SensorService, build_default_service

logger = logging.getLogger(__name__)

router = APIRouter()

HTTP_422_UNPROCESSABLE = 422

_ERROR_STATUS: Dict[Type[SensorStoreError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    DuplicateName: status.HTTP_409_CONFLICT,
    ConstraintViolation: HTTP_422_UNPROCESSABLE,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    QueryFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_service() -> SensorService:
    return build_default_service()


def build_response(
    success: bool,
    payload: Any = None,
    error_msg: str = "",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Wrap a result in the ``success``/``sensor``/``error_msg`` envelope."""
    if error_msg:
        logger.error(error_msg, extra={"status": status_code})
    envelope = SensorListResponse if isinstance(payload, list) else SensorResponse
    body = envelope(success=success, sensor=payload, error_msg=error_msg)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _failure(prefix: str, exc: SensorStoreError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return build_response(False, error_msg=f"{prefix}: {exc}", status_code=status_code)


@router.get(
    "/sensors",
    response_model=SensorListResponse,
    summary="List every known sensor.",
)
def list_sensors(service: SensorService = Depends(get_service)) -> JSONResponse:
    logger.debug("Listing sensors")
    try:
        sensors = service.list_sensors()
    except SensorStoreError as exc:
        return _failure("Could not retrieve list of sensors", exc)
    return build_response(True, sensors)


@router.post(
    "/sensors",
    status_code=status.HTTP_201_CREATED,
    response_model=SensorResponse,
    summary="Register a new sensor.",
)
def insert_sensor(
    sensor: Sensor,
    service: SensorService = Depends(get_service),
) -> JSONResponse:
    logger.debug("Inserting sensor", extra={"sensor_name": sensor.name})
    try:
        stored = service.create_sensor(sensor)
    except SensorStoreError as exc:
        return _failure("Could not insert new sensor", exc)
    return build_response(True, stored, status_code=status.HTTP_201_CREATED)


# Registered before /sensors/{name} so "nearest" is never read as a name.
@router.get(
    "/sensors/nearest",
    response_model=SensorResponse,
    summary="Find the sensor closest to a point (planar distance).",
)
def nearest_sensor(
    latitude: float = Query(..., allow_inf_nan=False),
    longitude: float = Query(..., allow_inf_nan=False),
    service: SensorService = Depends(get_service),
) -> JSONResponse:
    point = Point(latitude=latitude, longitude=longitude)
    try:
        nearest: Optional[Sensor] = service.nearest_to(point)
    except SensorStoreError as exc:
        return _failure("Could not retrieve list of sensors", exc)
    if nearest is None:
        return build_response(
            False,
            error_msg="List of known sensors is empty",
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return build_response(True, nearest)


@router.get(
    "/sensors/{name}",
    response_model=SensorResponse,
    summary="Fetch a sensor by name.",
)
def get_sensor(name: str, service: SensorService = Depends(get_service)) -> JSONResponse:
    try:
        sensor = service.get_sensor(name)
    except SensorStoreError as exc:
        return _failure("Could not fetch sensor metadata", exc)
    return build_response(True, sensor)


@router.put(
    "/sensors/{name}",
    response_model=SensorResponse,
    summary="Replace a sensor's fields, optionally renaming it.",
)
def update_sensor(
    name: str,
    sensor: Sensor,
    service: SensorService = Depends(get_service),
) -> JSONResponse:
    try:
        updated = service.update_sensor(name, sensor)
    except SensorStoreError as exc:
        return _failure("Could not update sensor", exc)
    return build_response(True, updated)


@router.delete(
    "/sensors/{name}",
    response_model=SensorResponse,
    summary="Delete a sensor and return its last state.",
)
def delete_sensor(name: str, service: SensorService = Depends(get_service)) -> JSONResponse:
    try:
        deleted = service.delete_sensor(name)
    except SensorStoreError as exc:
        return _failure("Could not delete sensor", exc)
    return build_response(True, deleted)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
