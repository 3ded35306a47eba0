from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_tags(tags: Iterable[str] | None) -> str:
    tags = list(tags or [])
    return ", ".join(tags) if tags else "-"


def render_sensor(payload: Dict[str, Any], heading: str = "Sensor") -> None:
    echo_heading(heading)
    echo_key_values(
        [
            ("name", payload.get("name")),
            ("latitude", payload.get("latitude")),
            ("longitude", payload.get("longitude")),
            ("tags", _format_tags(payload.get("tags"))),
        ]
    )


def render_sensors(payload: List[Dict[str, Any]]) -> None:
    echo_heading(f"Sensors ({len(payload)})")
    if not payload:
        typer.echo("No sensors registered.")
        return
    for sensor in payload:
        typer.echo(
            f"  - {sensor.get('name')}: "
            f"({sensor.get('latitude')}, {sensor.get('longitude')}) "
            f"tags={_format_tags(sensor.get('tags'))}"
        )
