"""
In-process record store.

Keeps records in insertion order per partition. Every call yields to the
event loop once before answering so callers see the same suspension
points they would with a remote store.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from cloudrecords.record import Cursor, Partition, Query, Record, RecordID, SavePolicy
from cloudrecords.record.query import next_cursor
from cloudrecords.store.base import (
    QueryResult,
    ServerRecordChangedError,
    UnknownItemError,
    new_change_tag,
)

logger = logging.getLogger(__name__)


def sort_key(value: Any) -> tuple:
    """
    Total order over field values, following jsonb: null < string < number
    < boolean < array < object. Arrays and objects order by size first.
    Types jsonb cannot hold sort after all of these, grouped by type name.
    """
    if value is None:
        return (0,)
    if isinstance(value, bool):
        return (3, value)
    if isinstance(value, (int, float, Decimal)):
        return (2, value)
    if isinstance(value, str):
        return (1, value)
    if isinstance(value, (list, tuple)):
        return (4, len(value), tuple(sort_key(v) for v in value))
    if isinstance(value, dict):
        return (5, len(value), tuple(sorted((str(k), sort_key(v)) for k, v in value.items())))
    return (6, type(value).__name__, value)


def sort_records(records: list[Record], sort: tuple) -> list[Record]:
    """Stable multi-key sort. Records missing a sort key go last for that key."""
    records = list(records)
    for descriptor in reversed(sort):
        present = [r for r in records if descriptor.key in r.fields]
        missing = [r for r in records if descriptor.key not in r.fields]
        present.sort(key=lambda r: sort_key(r.fields[descriptor.key]), reverse=not descriptor.ascending)
        records = present + missing
    return records


class MemoryStore:
    """RecordStore backed by a dict. One instance per partition."""

    def __init__(self, partition: Partition, container: str = "default"):
        self.partition = partition
        self.container = container
        self._records: dict[RecordID, Record] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def run_query(self, query: Query, limit: int, cursor: Optional[Cursor] = None) -> QueryResult:
        await asyncio.sleep(0)
        start = 0
        if cursor is not None:
            query, start = cursor.query, cursor.position

        matches = [
            r
            for r in self._records.values()
            if r.record_type == query.record_type and query.predicate.matches(r.fields)
        ]
        matches = sort_records(matches, query.sort)
        page = matches[start : start + limit]
        logger.debug(
            "Query %s in %s/%s: %d matches, returning %d from %d",
            query.record_type, self.container, self.partition.value, len(matches), len(page), start,
        )
        return QueryResult(
            records=[r.copy() for r in page],
            cursor=next_cursor(query, start, limit, start + limit < len(matches)),
        )

    async def fetch(self, record_id: RecordID) -> Optional[Record]:
        await asyncio.sleep(0)
        stored = self._records.get(record_id)
        return stored.copy() if stored else None

    async def save(self, record: Record) -> Record:
        await asyncio.sleep(0)
        record_id = record.record_id or RecordID()
        stored = self._records.get(record_id)
        if stored is not None and record.change_tag != stored.change_tag:
            raise ServerRecordChangedError(record_id, stored.change_tag)
        return self._write(record, record_id, dict(record.fields), stored)

    async def modify(self, records: list[Record], policy: SavePolicy) -> list[Record]:
        await asyncio.sleep(0)
        policy = SavePolicy(policy)
        planned = []
        # Check every record before writing any so a conflict leaves the store untouched
        for record in records:
            record_id = record.record_id or RecordID()
            stored = self._records.get(record_id)
            if (
                stored is not None
                and policy is SavePolicy.IF_SERVER_RECORD_UNCHANGED
                and record.change_tag != stored.change_tag
            ):
                raise ServerRecordChangedError(record_id, stored.change_tag)
            if stored is not None and policy is SavePolicy.CHANGED_KEYS:
                fields = {**stored.fields, **record.fields}
            else:
                fields = dict(record.fields)
            planned.append((record, record_id, fields, stored))

        return [self._write(*plan) for plan in planned]

    async def delete(self, record_id: RecordID) -> RecordID:
        await asyncio.sleep(0)
        if record_id not in self._records:
            raise UnknownItemError(record_id)
        del self._records[record_id]
        return record_id

    def inject_conflict(self, record_id: RecordID, **fields) -> Record:
        """
        Simulate a write by another client: bump the stored change tag and
        optionally overwrite some fields.
        """
        stored = self._records.get(record_id)
        if stored is None:
            raise UnknownItemError(record_id)
        stored.fields.update(fields)
        stored.change_tag = new_change_tag()
        stored.modified_at = datetime.now(timezone.utc)
        return stored.copy()

    def _write(self, record: Record, record_id: RecordID, fields: dict, stored: Optional[Record]) -> Record:
        now = datetime.now(timezone.utc)
        saved = Record(
            record_type=record.record_type,
            record_id=record_id,
            fields=fields,
            change_tag=new_change_tag(),
            created_at=stored.created_at if stored else now,
            modified_at=now,
        ).copy()
        self._records[record_id] = saved
        return saved.copy()


class MemoryContainer:
    """Container holding one MemoryStore per partition."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        self._databases = {
            partition: MemoryStore(partition, container=identifier) for partition in Partition
        }

    def database(self, partition: Partition) -> MemoryStore:
        return self._databases[Partition(partition)]
