from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import HTTP_422_UNPROCESSABLE, build_response, router
from datastore.sensor_store import build_default_store
from logging_config import configure_logging
from services.sensors import build_default_service
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # StoreUnavailable here aborts startup
    service = build_default_service()
    service.start()
    try:
        yield
    finally:
        service.shutdown()
        build_default_service.cache_clear()
        build_default_store.cache_clear()


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return build_response(
        False,
        error_msg=f"Could not parse request: {_describe_validation_error(exc)}",
        status_code=HTTP_422_UNPROCESSABLE,
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Locator API",
        description="CRUD and nearest-point lookup for registered sensors.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


def run(host: str | None = None, port: int | None = None) -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )

app = create_app()


if __name__ == "__main__":
    run()
