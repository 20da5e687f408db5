"""Document database abstractions and implementations."""

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DocumentExistsError,
)
from src.commons.infrastructure.documentdb.memory_provider import InMemoryDocumentDB
from src.commons.infrastructure.documentdb.mongodb_provider import MongoDBDocumentDB

__all__ = [
    # Base classes
    "DocumentDBBase",
    "DocumentExistsError",
    # Implementations
    "InMemoryDocumentDB",
    "MongoDBDocumentDB",
]
