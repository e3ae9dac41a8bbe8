"""
Remote store contract.

A RecordStore is one partition of one container. DAOs only ever talk to
this protocol, so any backend with the same shape can be plugged in.
Stores raise their own errors (below, or their driver's); the DAO wraps
whatever they raise in StoreError.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

from cloudrecords.record import Cursor, Partition, Query, Record, RecordID, SavePolicy


@dataclass
class QueryResult:
    records: list[Record] = field(default_factory=list)
    cursor: Optional[Cursor] = None


class ServerRecordChangedError(Exception):
    """The stored record changed since the submitted copy was read."""

    def __init__(self, record_id: RecordID, server_change_tag: Optional[str] = None):
        super().__init__(f"Record {record_id} was modified on the server")
        self.record_id = record_id
        self.server_change_tag = server_change_tag


class UnknownItemError(Exception):
    """The store has no record with the requested id."""

    def __init__(self, record_id: RecordID):
        super().__init__(f"Record {record_id} does not exist")
        self.record_id = record_id


class RecordStore(Protocol):
    async def run_query(self, query: Query, limit: int, cursor: Optional[Cursor] = None) -> QueryResult:
        """Return at most `limit` matching records, resuming from `cursor` if given."""
        ...

    async def fetch(self, record_id: RecordID) -> Optional[Record]:
        ...

    async def save(self, record: Record) -> Record:
        """Create the record, or overwrite it when the change tag matches the stored one."""
        ...

    async def modify(self, records: list[Record], policy: SavePolicy) -> list[Record]:
        ...

    async def delete(self, record_id: RecordID) -> RecordID:
        ...


class Container(Protocol):
    """A configured store handle exposing one RecordStore per partition."""

    identifier: str

    def database(self, partition: Partition) -> RecordStore:
        ...


def new_change_tag() -> str:
    return uuid.uuid4().hex[:16]
