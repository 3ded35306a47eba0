from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional
from urllib.parse import quote

import httpx
import typer

from cli.config import CLIConfig


def _sensor_body(
    name: str, latitude: float, longitude: float, tags: Optional[List[str]]
) -> Dict[str, Any]:
    return {
        "name": name,
        "latitude": latitude,
        "longitude": longitude,
        "tags": list(tags or []),
    }


class ApiClient:
    """Minimal HTTP client for the sensor service.

    Every endpoint answers with a ``success``/``sensor``/``error_msg``
    envelope; methods return the ``sensor`` field and exit on failure.
    """

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_sensors(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/sensors") or []

    def get_sensor(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/sensors/{quote(name, safe='')}")

    def create_sensor(
        self, name: str, latitude: float, longitude: float, tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        return self._request(
            "POST", "/sensors", json=_sensor_body(name, latitude, longitude, tags)
        )

    def update_sensor(
        self,
        old_name: str,
        name: str,
        latitude: float,
        longitude: float,
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "PUT",
            f"/sensors/{quote(old_name, safe='')}",
            json=_sensor_body(name, latitude, longitude, tags),
        )

    def delete_sensor(self, name: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/sensors/{quote(name, safe='')}")

    def nearest_sensor(self, latitude: float, longitude: float) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/sensors/nearest",
            params={"latitude": latitude, "longitude": longitude},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            self._fail(f"Could not reach {self._config.base_url}: {exc}")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or "success" not in payload:
            detail = response.text.strip() or "no detail provided."
            self._fail(f"Request failed with status {response.status_code}: {detail}")
        if not payload["success"]:
            self._fail(
                payload.get("error_msg")
                or f"Request failed with status {response.status_code}."
            )
        return payload.get("sensor")

    @staticmethod
    def _fail(message: str) -> NoReturn:
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
