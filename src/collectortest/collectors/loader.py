"""Locate and instantiate a collector plugin by name."""
from __future__ import annotations

import importlib
import importlib.util
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Optional, Sequence

import click

from collectortest.errors import PluginUnavailableError

from .base import missing_methods
from .registry import CollectorRegistry, registry as default_registry


def load_collector(
    name: str,
    search_paths: Sequence[str | Path] = (),
    *,
    collector_registry: Optional[CollectorRegistry] = None,
    verbose: bool = False,
) -> Any:
    """Return a collector instance for ``name``.

    Resolution order: registered factories, then ``module:Class`` /
    ``module.Class`` import paths, then a ``<name>.py`` file in the search paths
    (current directory when none are given) exposing a class called ``<name>``.
    """

    if not name:
        raise PluginUnavailableError("Collector name is empty")
    collector_registry = collector_registry or default_registry
    factory = _resolve_factory(name, search_paths, collector_registry, verbose)
    try:
        instance = factory()
    except Exception as exc:
        raise PluginUnavailableError(f"Collector '{name}' could not be instantiated: {exc}") from exc
    missing = missing_methods(instance)
    if missing:
        raise PluginUnavailableError(
            f"Collector '{name}' does not implement the collector contract (missing: {', '.join(missing)})"
        )
    _debug(verbose, f"Loaded collector {type(instance).__module__}.{type(instance).__qualname__}")
    return instance


def _resolve_factory(
    name: str,
    search_paths: Sequence[str | Path],
    collector_registry: CollectorRegistry,
    verbose: bool,
) -> Callable[[], Any]:
    if name in collector_registry:
        _debug(verbose, f"Resolving {name} from the collector registry")
        return collector_registry.get(name)
    if ":" in name or "." in name:
        _debug(verbose, f"Resolving {name} as an import path")
        return _import_string(name)
    paths = [Path(p) for p in search_paths] or [Path(os.getcwd())]
    for directory in paths:
        candidate = directory.expanduser() / f"{name}.py"
        _debug(verbose, f"Resolving {name}: trying {candidate}")
        if candidate.is_file():
            module = _load_from_source(candidate, name)
            return _class_from_module(module, name, str(candidate))
    searched = ", ".join(str(p) for p in paths)
    raise PluginUnavailableError(f"Collector '{name}' not found (registry, import path, or {name}.py in {searched})")


def _import_string(path: str) -> Callable[[], Any]:
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, sep, attr = path.rpartition(".")
    if not module_name or not attr:
        raise PluginUnavailableError(f"Invalid collector import path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginUnavailableError(f"Unable to import collector module '{module_name}': {exc}") from exc
    return _class_from_module(module, attr, module_name)


def _load_from_source(source: Path, name: str) -> ModuleType:
    path = source.resolve()
    module_name = f"collectortest_plugin_{name}_{hash(str(path)) & 0xFFFF:x}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PluginUnavailableError(f"Unable to load collector module from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise PluginUnavailableError(f"Collector module {path} failed to import: {exc}") from exc
    return module


def _class_from_module(module: ModuleType, attr: str, origin: str) -> Callable[[], Any]:
    factory = getattr(module, attr, None)
    if factory is None:
        raise PluginUnavailableError(f"'{attr}' not found in {origin}")
    if not callable(factory):
        raise PluginUnavailableError(f"'{attr}' in {origin} is not callable")
    return factory


def _debug(verbose: bool, message: str) -> None:
    if verbose:
        click.echo(f"[DEBUG] {message}", err=True)
