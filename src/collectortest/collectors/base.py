"""Collector contract and the data model exchanged with collectors."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

CONTRACT_METHODS = (
    "supported_store_types",
    "test_connection",
    "get_schema",
    "collect_sample",
    "get_collection_metrics",
)


class DataType(str, Enum):
    UNKNOWN = "unknown"
    STRING = "string"
    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    DECIMAL = "decimal"
    DOUBLE = "double"
    DATETIME = "datetime"
    GUID = "guid"
    BINARY = "binary"


@dataclass(frozen=True)
class DataContainer:
    """A data store reachable through an opaque connection string."""

    connection_string: str
    name: Optional[str] = None


@dataclass(frozen=True)
class DataCollection:
    """A table-like grouping of entities inside a container."""

    container: DataContainer
    name: str


@dataclass(frozen=True)
class DataEntity:
    """A column-like field of a collection."""

    name: str
    data_type: DataType
    db_data_type: str
    container: DataContainer
    collection: DataCollection


@dataclass(frozen=True)
class DataCollectionMetrics:
    name: str
    row_count: int
    used_space_kb: Union[Decimal, float, int]
    total_space_kb: Union[Decimal, float, int]


class Collector:
    """Base interface every collector plugin implements.

    Subclassing is optional; the loader accepts any object that provides the
    methods listed in :data:`CONTRACT_METHODS`.
    """

    name: str = ""

    def supported_store_types(self) -> Sequence[str]:
        raise NotImplementedError

    def test_connection(self, container: DataContainer) -> bool:
        raise NotImplementedError

    def get_schema(self, container: DataContainer) -> Tuple[Sequence[DataCollection], Sequence[DataEntity]]:
        raise NotImplementedError

    def collect_sample(self, entity: DataEntity, sample_size: int) -> Sequence[str]:
        raise NotImplementedError

    def get_collection_metrics(self, container: DataContainer) -> Sequence[DataCollectionMetrics]:
        raise NotImplementedError


def string_entity(container: DataContainer, collection_name: str, entity_name: str) -> DataEntity:
    """Entity handle used for sampling checks; the plan carries no type information."""
    collection = DataCollection(container=container, name=collection_name)
    return DataEntity(
        name=entity_name,
        data_type=DataType.STRING,
        db_data_type="string",
        container=container,
        collection=collection,
    )


def missing_methods(candidate: object) -> Tuple[str, ...]:
    return tuple(name for name in CONTRACT_METHODS if not callable(getattr(candidate, name, None)))
