"""Registry for collector factories keyed by collector name."""
from __future__ import annotations

from typing import Callable, Dict, Iterable

from .base import Collector

CollectorFactory = Callable[[], Collector]


class CollectorRegistry:
    """Stores collector factories and exposes lookup utilities."""

    def __init__(self) -> None:
        self._factories: Dict[str, CollectorFactory] = {}

    def register(self, name: str, factory: CollectorFactory) -> CollectorFactory:
        if name in self._factories:
            raise ValueError(f"Collector '{name}' already registered")
        self._factories[name] = factory
        return factory

    def get(self, name: str) -> CollectorFactory:
        try:
            return self._factories[name]
        except KeyError as exc:
            raise KeyError(f"Collector '{name}' is not registered") from exc

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> Iterable[str]:
        return tuple(self._factories.keys())

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)


registry = CollectorRegistry()


def register_collector(name: str) -> Callable[[CollectorFactory], CollectorFactory]:
    """Decorator registering a collector class (or any zero-arg factory) under ``name``."""

    def decorator(factory: CollectorFactory) -> CollectorFactory:
        return registry.register(name, factory)

    return decorator
