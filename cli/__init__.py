"""Command-line client for the sensor locator service."""

from importlib import import_module
from types import ModuleType

# ``cli.app`` must keep resolving to the module, not the Typer instance:
# tests patch ``cli.app.ApiClient`` through that path.


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)


__all__ = []
