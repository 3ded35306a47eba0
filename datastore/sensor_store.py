from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import (
    JSON,
    Column,
    Double,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine, Row, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from app.schemas import Sensor
from datastore.errors import (
    ConstraintViolation,
    DuplicateName,
    NotFound,
    QueryFailed,
    StoreUnavailable,
)
from settings import get_settings

logger = logging.getLogger(__name__)

metadata = MetaData()

sensors_table = Table(
    "sensors",
    metadata,
    Column("name", String, nullable=False, unique=True),
    Column("latitude", Double, nullable=False),
    Column("longitude", Double, nullable=False),
    # none_as_null so a missing tag list trips NOT NULL instead of storing 'null'
    Column("tags", JSON(none_as_null=True), nullable=False),
)

_COLUMNS = (
    sensors_table.c.name,
    sensors_table.c.latitude,
    sensors_table.c.longitude,
    sensors_table.c.tags,
)

_PG_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if code is not None:
        return code == _PG_UNIQUE_VIOLATION
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


@contextmanager
def _translate_errors(action: str, sensor_name: Optional[str] = None) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as store errors."""
    try:
        yield
    except IntegrityError as exc:
        if _is_unique_violation(exc):
            logger.warning(
                "Rejected duplicate sensor name",
                extra={"sensor_name": sensor_name, "reason": action},
            )
            raise DuplicateName(
                f"a sensor named {sensor_name!r} already exists", sensor_name
            ) from exc
        raise ConstraintViolation(f"{action} failed: {exc.orig}", sensor_name) from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error("Sensor database connection lost", extra={"reason": action})
            raise StoreUnavailable(f"{action} failed: connection lost", sensor_name) from exc
        raise QueryFailed(f"{action} failed: {exc.orig}", sensor_name) from exc
    except SQLAlchemyError as exc:
        raise QueryFailed(f"{action} failed: {exc}", sensor_name) from exc


@contextmanager
def _connect(
    engine: Engine,
    action: str,
    sensor_name: Optional[str] = None,
    transactional: bool = False,
) -> Iterator[Connection]:
    """Yield a connection, committing on exit when ``transactional``.

    Failing to obtain a connection means the backend is down; failures after
    that are classified per statement.
    """
    try:
        conn = engine.connect()
    except SQLAlchemyError as exc:
        logger.error("Sensor database unavailable", extra={"reason": action})
        detail = getattr(exc, "orig", None) or exc
        raise StoreUnavailable(
            f"{action} failed: database unavailable ({detail})", sensor_name
        ) from exc

    with conn, _translate_errors(action, sensor_name):
        if transactional:
            with conn.begin():
                yield conn
        else:
            yield conn


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate(sensor: Sensor) -> None:
    name = sensor.name
    if not isinstance(name, str) or not name:
        raise ConstraintViolation("sensor name must be a non-empty string", None)
    for field in ("latitude", "longitude"):
        if not _is_finite_number(getattr(sensor, field)):
            raise ConstraintViolation(f"{field} must be a finite number", name)
    tags = sensor.tags
    if not isinstance(tags, (list, tuple)) or not all(isinstance(tag, str) for tag in tags):
        raise ConstraintViolation("tags must be a list of strings", name)


def _to_row(sensor: Sensor) -> Dict[str, Any]:
    return {
        "name": sensor.name,
        "latitude": float(sensor.latitude),
        "longitude": float(sensor.longitude),
        "tags": list(sensor.tags),
    }


def _row_to_sensor(row: Row) -> Sensor:
    return Sensor(
        name=row.name,
        latitude=row.latitude,
        longitude=row.longitude,
        tags=list(row.tags or []),
    )


class SensorStore:
    """CRUD over the ``sensors`` table.

    Every operation is a single statement. Writes run inside a transaction
    so they either commit whole or roll back.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        """Create the sensors table if it is missing. Safe on every start."""
        with _connect(self.engine, "create sensors table", transactional=True) as conn:
            metadata.create_all(conn, checkfirst=True)
        logger.info("Sensor table ready")

    def close(self) -> None:
        self.engine.dispose()

    def list_sensors(self) -> list[Sensor]:
        with _connect(self.engine, "list sensors") as conn:
            rows = conn.execute(select(*_COLUMNS)).all()
        sensors = [_row_to_sensor(row) for row in rows]
        logger.debug("Listed sensors", extra={"row_count": len(sensors)})
        return sensors

    def insert_sensor(self, sensor: Sensor) -> Sensor:
        """Insert ``sensor`` and return the row exactly as stored."""
        _validate(sensor)
        statement = insert(sensors_table).values(**_to_row(sensor)).returning(*_COLUMNS)
        with _connect(self.engine, "insert sensor", sensor.name, transactional=True) as conn:
            row = conn.execute(statement).one()
        logger.info("Inserted sensor", extra={"sensor_name": row.name})
        return _row_to_sensor(row)

    def get_sensor_by_name(self, name: str) -> Sensor:
        # name is unique, so at most one row can match
        statement = select(*_COLUMNS).where(sensors_table.c.name == name)
        with _connect(self.engine, "fetch sensor", name) as conn:
            row = conn.execute(statement).first()
        if row is None:
            raise NotFound(f"no sensor named {name!r}", name)
        return _row_to_sensor(row)

    def update_sensor(self, old_name: str, sensor: Sensor) -> Sensor:
        """Replace every field of the row keyed by ``old_name``, rename included."""
        _validate(sensor)
        statement = (
            update(sensors_table)
            .where(sensors_table.c.name == old_name)
            .values(**_to_row(sensor))
            .returning(*_COLUMNS)
        )
        with _connect(self.engine, "update sensor", sensor.name, transactional=True) as conn:
            row = conn.execute(statement).first()
        if row is None:
            raise NotFound(f"no sensor named {old_name!r}", old_name)
        logger.info(
            "Updated sensor",
            extra={"sensor_name": row.name, "old_name": old_name},
        )
        return _row_to_sensor(row)

    def delete_sensor(self, name: str) -> Sensor:
        """Remove the named sensor and return the row as it was."""
        statement = (
            delete(sensors_table)
            .where(sensors_table.c.name == name)
            .returning(*_COLUMNS)
        )
        with _connect(self.engine, "delete sensor", name, transactional=True) as conn:
            row = conn.execute(statement).first()
        if row is None:
            raise NotFound(f"no sensor named {name!r}", name)
        logger.info("Deleted sensor", extra={"sensor_name": name})
        return _row_to_sensor(row)


def create_sensor_engine(
    url: str,
    connect_timeout: float = 5.0,
    echo: bool = False,
) -> Engine:
    """Build an engine for ``url`` with backend-appropriate connect options."""
    parsed = make_url(url)
    backend = parsed.get_backend_name()
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    connect_args: Dict[str, Any] = {}

    if backend == "sqlite":
        connect_args = {"timeout": connect_timeout, "check_same_thread": False}
        database = parsed.database
        if not database or database == ":memory:":
            # one shared connection, otherwise each thread sees its own empty db
            options["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    elif backend == "postgresql":
        connect_args = {"connect_timeout": max(1, int(connect_timeout))}

    return create_engine(parsed, connect_args=connect_args, **options)


@lru_cache
def build_default_store() -> SensorStore:
    settings = get_settings()
    engine = create_sensor_engine(
        settings.database_url,
        connect_timeout=settings.connect_timeout,
        echo=settings.echo_sql,
    )
    return SensorStore(engine)
