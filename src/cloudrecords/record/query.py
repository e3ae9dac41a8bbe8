"""
Queries, predicates, cursors and save policies.

Predicates are plain values describing a filter over record fields.
They know how to evaluate themselves against a field mapping (used by
the in-memory store) and how to serialize to a dict (used by cursor
tokens). SQL compilation lives with the Postgres store.

    where("priority", ">", 2) & where("title", "begins_with", "Draft")
"""

import base64
import json
import operator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from cloudrecords.record.model import RecordID


def _begins_with(actual: Any, prefix: Any) -> bool:
    return isinstance(actual, str) and actual.startswith(prefix)


def _contains(actual: Any, value: Any) -> bool:
    if isinstance(actual, (list, tuple, str)):
        return value in actual
    return False


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda actual, values: actual in values,
    "begins_with": _begins_with,
    "contains": _contains,
}


_JSON_SCALARS = (str, int, float, bool, type(None))


def encode_value(value: Any) -> Any:
    """
    JSON-safe form of a comparison value.

    Scalars pass through; datetime, date, Decimal and RecordID values are
    tagged so decode_value() can restore them. Raises ValueError for any
    other type.
    """
    if isinstance(value, _JSON_SCALARS):
        return value
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    if isinstance(value, RecordID):
        return {"$record_id": [value.record_name, value.zone]}
    raise ValueError(f"Unsupported comparison value of type {type(value).__name__}")


def decode_value(value: Any) -> Any:
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    if not isinstance(value, dict):
        return value
    if "$datetime" in value:
        return datetime.fromisoformat(value["$datetime"])
    if "$date" in value:
        return date.fromisoformat(value["$date"])
    if "$decimal" in value:
        return Decimal(value["$decimal"])
    if "$record_id" in value:
        return RecordID(*value["$record_id"])
    raise ValueError(f"Unknown encoded value {value!r}")


class Predicate:
    """Base class for record filters. Combine with &, | and ~."""

    def matches(self, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def to_dict(self) -> dict:
        raise NotImplementedError

    def __and__(self, other: "Predicate") -> "And":
        return And((self, other))

    def __or__(self, other: "Predicate") -> "Or":
        return Or((self, other))

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class TruePredicate(Predicate):
    def matches(self, fields: Mapping[str, Any]) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"kind": "true"}


TRUEPREDICATE = TruePredicate()


@dataclass(frozen=True)
class Comparison(Predicate):
    """Compares one field against a value. A missing field only satisfies '!='."""

    key: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unknown operator {self.op!r}")
        if self.op == "in":
            if isinstance(self.value, str):
                raise ValueError("'in' expects a collection of values")
            object.__setattr__(self, "value", tuple(self.value))
        elif isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))
        # Fail here rather than when a cursor token is built
        encode_value(self.value)

    def matches(self, fields: Mapping[str, Any]) -> bool:
        if self.key not in fields:
            return self.op == "!="
        try:
            return bool(OPERATORS[self.op](fields[self.key], self.value))
        except TypeError:
            # Mismatched types (e.g. str < int) never match
            return False

    def to_dict(self) -> dict:
        return {"kind": "cmp", "key": self.key, "op": self.op, "value": encode_value(self.value)}


@dataclass(frozen=True)
class And(Predicate):
    predicates: tuple

    def matches(self, fields: Mapping[str, Any]) -> bool:
        return all(p.matches(fields) for p in self.predicates)

    def to_dict(self) -> dict:
        return {"kind": "and", "predicates": [p.to_dict() for p in self.predicates]}

    def __and__(self, other: Predicate) -> "And":
        return And(self.predicates + (other,))


@dataclass(frozen=True)
class Or(Predicate):
    predicates: tuple

    def matches(self, fields: Mapping[str, Any]) -> bool:
        return any(p.matches(fields) for p in self.predicates)

    def to_dict(self) -> dict:
        return {"kind": "or", "predicates": [p.to_dict() for p in self.predicates]}

    def __or__(self, other: Predicate) -> "Or":
        return Or(self.predicates + (other,))


@dataclass(frozen=True)
class Not(Predicate):
    predicate: Predicate

    def matches(self, fields: Mapping[str, Any]) -> bool:
        return not self.predicate.matches(fields)

    def to_dict(self) -> dict:
        return {"kind": "not", "predicate": self.predicate.to_dict()}


def where(key: str, op: str, value: Any) -> Comparison:
    """Shorthand for Comparison(key, op, value)."""
    return Comparison(key, op, value)


def predicate_from_dict(data: dict) -> Predicate:
    kind = data["kind"]
    if kind == "true":
        return TRUEPREDICATE
    if kind == "cmp":
        return Comparison(data["key"], data["op"], decode_value(data["value"]))
    if kind == "and":
        return And(tuple(predicate_from_dict(p) for p in data["predicates"]))
    if kind == "or":
        return Or(tuple(predicate_from_dict(p) for p in data["predicates"]))
    if kind == "not":
        return Not(predicate_from_dict(data["predicate"]))
    raise ValueError(f"Unknown predicate kind {kind!r}")


@dataclass(frozen=True)
class SortDescriptor:
    key: str
    ascending: bool = True


@dataclass(frozen=True)
class Query:
    record_type: str
    predicate: Predicate = TRUEPREDICATE
    sort: tuple = ()

    def to_dict(self) -> dict:
        return {
            "record_type": self.record_type,
            "predicate": self.predicate.to_dict(),
            "sort": [[s.key, s.ascending] for s in self.sort],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Query":
        return cls(
            record_type=data["record_type"],
            predicate=predicate_from_dict(data["predicate"]),
            sort=tuple(SortDescriptor(key, ascending) for key, ascending in data["sort"]),
        )


@dataclass(frozen=True)
class Cursor:
    """
    Continuation point of a paginated query.

    Only stores read `position`; everything else treats a cursor as an
    opaque value. `token` gives a string form that can be persisted and
    turned back into a cursor with from_token().
    """

    query: Query
    position: int

    @property
    def token(self) -> str:
        payload = json.dumps({"q": self.query.to_dict(), "p": self.position}, separators=(",", ":"))
        return base64.urlsafe_b64encode(payload.encode()).decode()

    @classmethod
    def from_token(cls, token: str) -> "Cursor":
        try:
            data = json.loads(base64.urlsafe_b64decode(token.encode()))
            return cls(query=Query.from_dict(data["q"]), position=int(data["p"]))
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Invalid cursor token: {e}") from e


class SavePolicy(str, Enum):
    """How the store reconciles a modify with a record changed since it was read."""

    IF_SERVER_RECORD_UNCHANGED = "if_server_record_unchanged"
    CHANGED_KEYS = "changed_keys"
    ALL_KEYS = "all_keys"


def next_cursor(query: Query, start: int, limit: int, has_more: bool) -> Optional[Cursor]:
    """Cursor for the page after [start, start + limit), or None when exhausted."""
    return Cursor(query, start + limit) if has_more else None
