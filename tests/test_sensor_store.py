"""Tests for the SQL-backed sensor store."""

from __future__ import annotations

import math
from typing import Iterator

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from app.schemas import Sensor
from datastore.errors import (
    ConstraintViolation,
    DuplicateName,
    NotFound,
    QueryFailed,
    StoreUnavailable,
)
from datastore.sensor_store import (
    SensorStore,
    _translate_errors,
    create_sensor_engine,
    sensors_table,
)


def _sensor(
    name: str = "harbor-01",
    latitude: float = 37.774929,
    longitude: float = -122.419416,
    tags: list[str] | None = None,
) -> Sensor:
    return Sensor(
        name=name,
        latitude=latitude,
        longitude=longitude,
        tags=["air", "pm25"] if tags is None else tags,
    )


@pytest.fixture
def store() -> Iterator[SensorStore]:
    sensor_store = SensorStore(create_sensor_engine("sqlite://"))
    sensor_store.create_schema()
    yield sensor_store
    sensor_store.close()


def test_insert_returns_persisted_row_and_get_round_trips(store: SensorStore) -> None:
    original = _sensor(tags=["b", "a", "b"])

    stored = store.insert_sensor(original)
    fetched = store.get_sensor_by_name(original.name)

    assert stored == original
    assert fetched == original
    assert fetched.tags == ["b", "a", "b"]


def test_empty_tag_list_round_trips(store: SensorStore) -> None:
    store.insert_sensor(_sensor(tags=[]))

    assert store.get_sensor_by_name("harbor-01").tags == []


def test_returned_sensors_are_copies(store: SensorStore) -> None:
    store.insert_sensor(_sensor())

    fetched = store.get_sensor_by_name("harbor-01")
    fetched.tags.append("mutated")
    fetched.latitude = 0.0

    fetched_again = store.get_sensor_by_name("harbor-01")
    assert fetched_again.tags == ["air", "pm25"]
    assert fetched_again.latitude == 37.774929


def test_duplicate_insert_is_rejected_and_original_kept(store: SensorStore) -> None:
    original = store.insert_sensor(_sensor())

    with pytest.raises(DuplicateName) as excinfo:
        store.insert_sensor(_sensor(latitude=1.0, longitude=2.0, tags=["other"]))

    assert excinfo.value.sensor_name == "harbor-01"
    assert store.get_sensor_by_name("harbor-01") == original
    assert len(store.list_sensors()) == 1


def test_get_missing_sensor_raises_not_found(store: SensorStore) -> None:
    with pytest.raises(NotFound):
        store.get_sensor_by_name("nope")


def test_update_with_rename_moves_the_row(store: SensorStore) -> None:
    store.insert_sensor(_sensor())
    replacement = _sensor(name="harbor-02", latitude=10.5, longitude=-3.25, tags=["moved"])

    updated = store.update_sensor("harbor-01", replacement)

    assert updated == replacement
    assert store.get_sensor_by_name("harbor-02") == replacement
    with pytest.raises(NotFound):
        store.get_sensor_by_name("harbor-01")


def test_update_in_place_keeps_name(store: SensorStore) -> None:
    store.insert_sensor(_sensor())

    updated = store.update_sensor("harbor-01", _sensor(latitude=0.5, tags=["recalibrated"]))

    assert updated.name == "harbor-01"
    assert store.get_sensor_by_name("harbor-01").tags == ["recalibrated"]


def test_update_missing_sensor_raises_not_found(store: SensorStore) -> None:
    with pytest.raises(NotFound) as excinfo:
        store.update_sensor("ghost", _sensor(name="ghost"))

    assert excinfo.value.sensor_name == "ghost"
    assert store.list_sensors() == []


def test_rename_onto_existing_name_is_rejected(store: SensorStore) -> None:
    first = store.insert_sensor(_sensor(name="first", latitude=1.0))
    second = store.insert_sensor(_sensor(name="second", latitude=2.0))

    with pytest.raises(DuplicateName):
        store.update_sensor("second", _sensor(name="first", latitude=3.0))

    assert store.get_sensor_by_name("first") == first
    assert store.get_sensor_by_name("second") == second


def test_delete_returns_removed_row(store: SensorStore) -> None:
    original = store.insert_sensor(_sensor())

    deleted = store.delete_sensor("harbor-01")

    assert deleted == original
    with pytest.raises(NotFound):
        store.get_sensor_by_name("harbor-01")


def test_delete_missing_sensor_raises_not_found(store: SensorStore) -> None:
    with pytest.raises(NotFound):
        store.delete_sensor("ghost")


def test_list_reflects_inserts_deletes_and_updates(store: SensorStore) -> None:
    for index in range(5):
        store.insert_sensor(_sensor(name=f"s-{index}", latitude=float(index)))
    store.delete_sensor("s-1")
    store.delete_sensor("s-3")
    store.update_sensor("s-4", _sensor(name="s-4", latitude=40.0, tags=["edited"]))

    listed = {sensor.name: sensor for sensor in store.list_sensors()}

    assert sorted(listed) == ["s-0", "s-2", "s-4"]
    assert listed["s-4"].latitude == 40.0
    assert listed["s-4"].tags == ["edited"]
    assert listed["s-2"].latitude == 2.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"latitude": math.nan},
        {"longitude": math.inf},
        {"tags": None},
        {"tags": ["ok", 3]},
    ],
)
def test_invalid_fields_raise_constraint_violation(store: SensorStore, overrides: dict) -> None:
    fields = {"name": "bad", "latitude": 1.0, "longitude": 2.0, "tags": []}
    fields.update(overrides)
    sensor = Sensor.model_construct(**fields)

    with pytest.raises(ConstraintViolation):
        store.insert_sensor(sensor)

    assert store.list_sensors() == []


def test_create_schema_is_idempotent(store: SensorStore) -> None:
    store.insert_sensor(_sensor())

    store.create_schema()
    store.create_schema()

    assert [sensor.name for sensor in store.list_sensors()] == ["harbor-01"]


def test_file_backed_store_persists_across_engines(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'nested' / 'sensors.db'}"
    first = SensorStore(create_sensor_engine(url))
    first.create_schema()
    first.insert_sensor(_sensor())
    first.close()

    second = SensorStore(create_sensor_engine(url))
    second.create_schema()
    try:
        assert second.get_sensor_by_name("harbor-01") == _sensor()
    finally:
        second.close()


def test_unreachable_database_raises_store_unavailable(tmp_path) -> None:
    # a directory cannot be opened as a database file
    unreachable = SensorStore(create_sensor_engine(f"sqlite:///{tmp_path}"))

    with pytest.raises(StoreUnavailable):
        unreachable.create_schema()
    with pytest.raises(StoreUnavailable):
        unreachable.list_sensors()


def test_failing_statement_raises_query_failed(store: SensorStore) -> None:
    store.insert_sensor(_sensor())
    sensors_table.drop(store.engine)

    with pytest.raises(QueryFailed):
        store.list_sensors()
    with pytest.raises(QueryFailed):
        store.get_sensor_by_name("harbor-01")
    with pytest.raises(QueryFailed):
        store.insert_sensor(_sensor(name="harbor-02"))


class _DriverError(Exception):
    """Stands in for a driver exception carrying a PostgreSQL SQLSTATE."""

    def __init__(self, pgcode: str) -> None:
        super().__init__(f"sqlstate {pgcode}")
        self.pgcode = pgcode


def test_postgres_unique_violation_maps_to_duplicate_name() -> None:
    with pytest.raises(DuplicateName) as excinfo:
        with _translate_errors("insert sensor", "harbor-01"):
            raise IntegrityError("INSERT INTO sensors", {}, _DriverError("23505"))

    assert excinfo.value.sensor_name == "harbor-01"


def test_postgres_not_null_violation_maps_to_constraint_violation() -> None:
    with pytest.raises(ConstraintViolation):
        with _translate_errors("insert sensor", "harbor-01"):
            raise IntegrityError("INSERT INTO sensors", {}, _DriverError("23502"))


def test_invalidated_connection_maps_to_store_unavailable() -> None:
    with pytest.raises(StoreUnavailable):
        with _translate_errors("list sensors"):
            raise DBAPIError(
                "SELECT", {}, Exception("server closed the connection"),
                connection_invalidated=True,
            )


def test_other_backend_errors_map_to_query_failed() -> None:
    with pytest.raises(QueryFailed):
        with _translate_errors("list sensors"):
            raise DBAPIError("SELECT", {}, Exception("syntax error"))
    with pytest.raises(QueryFailed):
        with _translate_errors("list sensors"):
            raise SQLAlchemyError("compile failed")
