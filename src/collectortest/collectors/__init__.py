"""Collector contract, registry and loader exports."""
from .base import (
    Collector,
    DataCollection,
    DataCollectionMetrics,
    DataContainer,
    DataEntity,
    DataType,
)
from .loader import load_collector
from .registry import CollectorRegistry, register_collector, registry

__all__ = [
    "Collector",
    "CollectorRegistry",
    "DataCollection",
    "DataCollectionMetrics",
    "DataContainer",
    "DataEntity",
    "DataType",
    "load_collector",
    "register_collector",
    "registry",
]
