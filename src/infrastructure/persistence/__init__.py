"""Workflow state persistence."""

from src.infrastructure.persistence.base import StateRecordStoreBase
from src.infrastructure.persistence.documentdb_store import DocumentDBStateRecordStore
from src.infrastructure.persistence.memory_store import InMemoryStateRecordStore

__all__ = [
    "StateRecordStoreBase",
    "DocumentDBStateRecordStore",
    "InMemoryStateRecordStore",
]
