"""
Store

Backends implementing the remote store contract: an in-process store and
a Postgres-backed one. open_container() picks one by name.
"""

from cloudrecords.store.base import (
    Container,
    QueryResult,
    RecordStore,
    ServerRecordChangedError,
    UnknownItemError,
)
from cloudrecords.store.memory import MemoryContainer, MemoryStore
from cloudrecords.store.postgres import PostgresContainer, PostgresStore

CONTAINER_TYPES = {
    "memory": MemoryContainer,
    "postgres": PostgresContainer,
}


def open_container(identifier: str, backend: str) -> Container:
    """Create a container of the given backend type."""
    try:
        container_type = CONTAINER_TYPES[backend]
    except KeyError:
        raise ValueError(f"Unknown store backend {backend!r}") from None
    return container_type(identifier)


__all__ = [
    "Container",
    "MemoryContainer",
    "MemoryStore",
    "PostgresContainer",
    "PostgresStore",
    "QueryResult",
    "RecordStore",
    "ServerRecordChangedError",
    "UnknownItemError",
    "open_container",
]
