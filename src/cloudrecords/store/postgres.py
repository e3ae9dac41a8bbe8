"""
Record store persisted in Postgres.

All records live in one `records` table keyed by (container, partition,
zone, record_name); field values are kept as JSONB, so they must be
JSON-compatible. Schema: migrations/001_initial_schema.sql.
"""

import logging
from typing import Any, Optional

from psycopg.types.json import Jsonb

from cloudrecords import db
from cloudrecords.record import (
    And,
    Comparison,
    Cursor,
    Not,
    Or,
    Partition,
    Predicate,
    Query,
    Record,
    RecordID,
    SavePolicy,
)
from cloudrecords.record.query import TruePredicate, next_cursor
from cloudrecords.store.base import (
    QueryResult,
    ServerRecordChangedError,
    UnknownItemError,
    new_change_tag,
)

logger = logging.getLogger(__name__)

_ORDERING = {"<": "<", "<=": "<=", ">": ">", ">=": ">="}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _compile_comparison(predicate: Comparison) -> tuple[str, list]:
    key, op, value = predicate.key, predicate.op, predicate.value

    if op == "==":
        return "fields -> %s = %s", [key, Jsonb(value)]
    if op == "!=":
        return "(fields -> %s IS NULL OR fields -> %s <> %s)", [key, key, Jsonb(value)]
    if op in _ORDERING:
        # jsonb orders across types; only compare like with like
        sql = f"(jsonb_typeof(fields -> %s) = jsonb_typeof(%s) AND fields -> %s {_ORDERING[op]} %s)"
        return sql, [key, Jsonb(value), key, Jsonb(value)]
    if op == "in":
        if not value:
            return "FALSE", []
        clauses = " OR ".join("fields -> %s = %s" for _ in value)
        params = []
        for item in value:
            params.extend([key, Jsonb(item)])
        return f"({clauses})", params
    if op == "begins_with":
        if not isinstance(value, str):
            return "FALSE", []
        sql = "(jsonb_typeof(fields -> %s) = 'string' AND fields ->> %s LIKE %s)"
        return sql, [key, key, _escape_like(value) + "%"]
    if op == "contains":
        sql = "(jsonb_typeof(fields -> %s) = 'array' AND fields -> %s @> %s)"
        params: list[Any] = [key, key, Jsonb([value])]
        if isinstance(value, str):
            sql = f"({sql} OR (jsonb_typeof(fields -> %s) = 'string' AND strpos(fields ->> %s, %s) > 0))"
            params.extend([key, key, value])
        return sql, params
    raise ValueError(f"Unsupported operator {op!r}")


def compile_predicate(predicate: Predicate) -> tuple[str, list]:
    """
    Translate a predicate into a SQL boolean expression over the `fields`
    column. Comparisons are wrapped in COALESCE so a missing field reads as
    false (and NOT of it as true), matching in-memory evaluation.
    """
    if isinstance(predicate, TruePredicate):
        return "TRUE", []
    if isinstance(predicate, Comparison):
        sql, params = _compile_comparison(predicate)
        return f"COALESCE({sql}, FALSE)", params
    if isinstance(predicate, (And, Or)):
        if not predicate.predicates:
            return ("TRUE" if isinstance(predicate, And) else "FALSE"), []
        joiner = " AND " if isinstance(predicate, And) else " OR "
        parts, params = [], []
        for child in predicate.predicates:
            sql, child_params = compile_predicate(child)
            parts.append(sql)
            params.extend(child_params)
        return "(" + joiner.join(parts) + ")", params
    if isinstance(predicate, Not):
        sql, params = compile_predicate(predicate.predicate)
        return f"(NOT {sql})", params
    raise ValueError(f"Unsupported predicate {type(predicate).__name__}")


def compile_sort(sort: tuple) -> tuple[str, list]:
    parts, params = [], []
    for descriptor in sort:
        direction = "ASC" if descriptor.ascending else "DESC"
        parts.append(f"fields -> %s {direction} NULLS LAST")
        params.append(descriptor.key)
    parts.append("seq")
    return ", ".join(parts), params


class PostgresStore:
    """RecordStore for one partition of one container."""

    def __init__(self, container: str, partition: Partition):
        self.container = container
        self.partition = Partition(partition)

    def _key(self, record_id: RecordID) -> tuple:
        return (self.container, self.partition.value, record_id.zone, record_id.record_name)

    def _to_record(self, row: dict) -> Record:
        return Record(
            record_type=row["record_type"],
            record_id=RecordID(row["record_name"], row["zone"]),
            fields=dict(row["fields"]),
            change_tag=row["change_tag"],
            created_at=row["created_at"],
            modified_at=row["modified_at"],
        )

    async def run_query(self, query: Query, limit: int, cursor: Optional[Cursor] = None) -> QueryResult:
        start = 0
        if cursor is not None:
            query, start = cursor.query, cursor.position

        where_sql, where_params = compile_predicate(query.predicate)
        order_sql, order_params = compile_sort(query.sort)
        # Fetch one extra row to learn whether another page exists
        rows = await db.fetch_all(
            f"""
            SELECT * FROM records
            WHERE container = %s AND partition = %s AND record_type = %s
              AND {where_sql}
            ORDER BY {order_sql}
            LIMIT %s OFFSET %s
            """,
            (
                self.container,
                self.partition.value,
                query.record_type,
                *where_params,
                *order_params,
                limit + 1,
                start,
            ),
        )
        has_more = len(rows) > limit
        logger.debug(
            "Query %s in %s/%s returned %d rows from offset %d",
            query.record_type, self.container, self.partition.value, min(len(rows), limit), start,
        )
        return QueryResult(
            records=[self._to_record(row) for row in rows[:limit]],
            cursor=next_cursor(query, start, limit, has_more),
        )

    async def fetch(self, record_id: RecordID) -> Optional[Record]:
        row = await db.fetch_one(
            """
            SELECT * FROM records
            WHERE container = %s AND partition = %s AND zone = %s AND record_name = %s
            """,
            self._key(record_id),
        )
        return self._to_record(row) if row else None

    async def save(self, record: Record) -> Record:
        record_id = record.record_id or RecordID()
        async with db.get_cursor() as cur:
            stored_tag = await self._lock(cur, record_id)
            if stored_tag is not None and stored_tag != record.change_tag:
                raise ServerRecordChangedError(record_id, stored_tag)
            return await self._upsert(cur, record, record_id, merge=False)

    async def modify(self, records: list[Record], policy: SavePolicy) -> list[Record]:
        policy = SavePolicy(policy)
        saved = []
        # One transaction: a conflict on any record rolls back the whole batch
        async with db.get_cursor() as cur:
            for record in records:
                record_id = record.record_id or RecordID()
                stored_tag = await self._lock(cur, record_id)
                if (
                    stored_tag is not None
                    and policy is SavePolicy.IF_SERVER_RECORD_UNCHANGED
                    and stored_tag != record.change_tag
                ):
                    raise ServerRecordChangedError(record_id, stored_tag)
                merge = policy is SavePolicy.CHANGED_KEYS
                saved.append(await self._upsert(cur, record, record_id, merge=merge))
        return saved

    async def delete(self, record_id: RecordID) -> RecordID:
        deleted = await db.execute(
            """
            DELETE FROM records
            WHERE container = %s AND partition = %s AND zone = %s AND record_name = %s
            """,
            self._key(record_id),
        )
        if not deleted:
            raise UnknownItemError(record_id)
        return record_id

    async def _lock(self, cur, record_id: RecordID) -> Optional[str]:
        """Lock the stored row (if any) and return its change tag."""
        await cur.execute(
            """
            SELECT change_tag FROM records
            WHERE container = %s AND partition = %s AND zone = %s AND record_name = %s
            FOR UPDATE
            """,
            self._key(record_id),
        )
        row = await cur.fetchone()
        return row["change_tag"] if row else None

    async def _upsert(self, cur, record: Record, record_id: RecordID, merge: bool) -> Record:
        fields_sql = "records.fields || EXCLUDED.fields" if merge else "EXCLUDED.fields"
        await cur.execute(
            f"""
            INSERT INTO records
                (container, partition, zone, record_name, record_type, fields, change_tag)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (container, partition, zone, record_name) DO UPDATE SET
                record_type = EXCLUDED.record_type,
                fields = {fields_sql},
                change_tag = EXCLUDED.change_tag,
                modified_at = now()
            RETURNING *
            """,
            (*self._key(record_id), record.record_type, Jsonb(record.fields), new_change_tag()),
        )
        return self._to_record(await cur.fetchone())


class PostgresContainer:
    """Container whose partitions are rows of the shared `records` table."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        self._databases = {
            partition: PostgresStore(identifier, partition) for partition in Partition
        }

    def database(self, partition: Partition) -> PostgresStore:
        return self._databases[Partition(partition)]
