"""collectortest package initialization."""
from __future__ import annotations

import importlib
import os
from typing import Iterable, Optional

from .version import __version__

__all__ = [
    "__version__",
    "bootstrap",
]

PLUGINS_ENV = "COLLECTORTEST_PLUGINS"

_BOOTSTRAPPED = False


def bootstrap(plugins: Optional[Iterable[str]] = None) -> None:
    """Import collector plugin modules and let them register (idempotent)."""

    global _BOOTSTRAPPED
    if _BOOTSTRAPPED:
        return
    _load_plugins(plugins)
    _BOOTSTRAPPED = True


def _load_plugins(plugins: Optional[Iterable[str]]) -> None:
    names = list(plugins or ())
    plugin_env = os.environ.get(PLUGINS_ENV)
    if plugin_env:
        names.extend(plugin_env.split(","))
    for item in names:
        module_name = item.strip()
        if not module_name:
            continue
        module = importlib.import_module(module_name)
        register = getattr(module, "register", None)
        if callable(register):
            register()
