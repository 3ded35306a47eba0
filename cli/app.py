from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_sensor, render_sensors


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Manage sensors registered with the sensor locator service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    if ctx.invoked_subcommand == "serve":
        return
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List every registered sensor."""
    state = _get_state(ctx)
    render_sensors(state.client.list_sensors())


@app.command("get")
def get_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Sensor name."),
) -> None:
    """Show a single sensor."""
    state = _get_state(ctx)
    render_sensor(state.client.get_sensor(name))


@app.command("add")
def add_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Unique sensor name."),
    latitude: float = typer.Option(..., "--latitude", "--lat", help="Latitude."),
    longitude: float = typer.Option(..., "--longitude", "--lon", help="Longitude."),
    tags: Optional[List[str]] = typer.Option(
        None, "--tag", "-t", help="Tag to attach; repeat for several."
    ),
) -> None:
    """Register a new sensor."""
    state = _get_state(ctx)
    sensor = state.client.create_sensor(name, latitude, longitude, list(tags or []))
    typer.secho(f"Sensor {sensor.get('name')!r} created.", fg=typer.colors.GREEN)
    render_sensor(sensor)


@app.command("update")
def update_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Current sensor name."),
    latitude: float = typer.Option(..., "--latitude", "--lat", help="New latitude."),
    longitude: float = typer.Option(..., "--longitude", "--lon", help="New longitude."),
    rename: Optional[str] = typer.Option(None, "--rename", help="New sensor name."),
    tags: Optional[List[str]] = typer.Option(
        None, "--tag", "-t", help="Replacement tag list; repeat for several."
    ),
) -> None:
    """Replace all fields of a sensor."""
    state = _get_state(ctx)
    sensor = state.client.update_sensor(
        name, rename or name, latitude, longitude, list(tags or [])
    )
    typer.secho(f"Sensor {name!r} updated.", fg=typer.colors.GREEN)
    render_sensor(sensor)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Sensor name."),
) -> None:
    """Delete a sensor and show what was removed."""
    state = _get_state(ctx)
    sensor = state.client.delete_sensor(name)
    typer.secho(f"Sensor {name!r} deleted.", fg=typer.colors.GREEN)
    render_sensor(sensor, heading="Deleted sensor")


@app.command("nearest")
def nearest_command(
    ctx: typer.Context,
    latitude: float = typer.Option(..., "--latitude", "--lat", help="Query latitude."),
    longitude: float = typer.Option(..., "--longitude", "--lon", help="Query longitude."),
) -> None:
    """Find the sensor closest to a point."""
    state = _get_state(ctx)
    render_sensor(state.client.nearest_sensor(latitude, longitude), heading="Nearest sensor")


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
) -> None:
    """Run the HTTP API."""
    from app.main import run

    run(host=host, port=port)
