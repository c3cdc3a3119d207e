"""DataFrame recording layer for gathered Espree readings."""

from data_store.schemas import SCHEMA, reading_to_row
from data_store.store import GatherScheduler, ReadingStore

__all__ = ["SCHEMA", "reading_to_row", "ReadingStore", "GatherScheduler"]
