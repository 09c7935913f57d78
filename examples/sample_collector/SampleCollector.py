"""In-memory collector used to demonstrate a plan run.

Run from this directory:  collectortest
"""
import random
from decimal import Decimal

from collectortest.collectors import (
    Collector,
    DataCollection,
    DataCollectionMetrics,
    DataEntity,
    DataType,
)

TABLES = {
    "email": {
        "from_addr": [f"user{i}@example.com" for i in range(200)],
        "subject": [f"Subject #{i}" for i in range(200)],
    },
    "people": {
        "name": ["Ann", "Bob", "Carl", "Dana", "Eve", "Finn", "Gus", "Hal"],
    },
}


class SampleCollector(Collector):
    name = "SampleCollector"

    def supported_store_types(self):
        return ["SampleStore"]

    def test_connection(self, container):
        return container.connection_string.startswith("sample://")

    def get_schema(self, container):
        collections = [DataCollection(container, table) for table in TABLES]
        entities = [
            DataEntity(column, DataType.STRING, "text", container, collection)
            for collection in collections
            for column in TABLES[collection.name]
        ]
        return collections, entities

    def collect_sample(self, entity, sample_size):
        values = TABLES[entity.collection.name][entity.name]
        if sample_size <= len(values):
            return random.sample(values, sample_size)
        return [random.choice(values) for _ in range(sample_size)]

    def get_collection_metrics(self, container):
        return [
            DataCollectionMetrics("email", 200, Decimal("12.345"), Decimal("64")),
            DataCollectionMetrics("people", 8, Decimal("0.25"), Decimal("8")),
        ]
