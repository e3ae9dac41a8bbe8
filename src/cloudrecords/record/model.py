"""
Raw remote records and the contract every stored type implements.

A Record is what the store hands back: a type name, an id, a bag of
field values and some bookkeeping the store maintains (change tag,
timestamps). Application code never touches Records directly; it
defines a CloudObject type that knows how to build itself from one
and how to turn itself back into one.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Iterator, Optional, Protocol, TypeVar, runtime_checkable

DEFAULT_ZONE = "_defaultZone"


class Partition(str, Enum):
    """Logical namespace inside a container."""

    PRIVATE = "private"
    PUBLIC = "public"
    SHARED = "shared"


@dataclass(frozen=True)
class RecordID:
    """Identifier of a record within a zone. Names default to a random hex string."""

    record_name: str = field(default_factory=lambda: uuid.uuid4().hex)
    zone: str = DEFAULT_ZONE

    def __str__(self) -> str:
        if self.zone == DEFAULT_ZONE:
            return self.record_name
        return f"{self.zone}/{self.record_name}"


@dataclass
class Record:
    """
    Opaque key-value record exchanged with a store.

    record_id is None for a record that has never been saved; the store
    assigns one on save. change_tag identifies the stored version and is
    what conflict detection compares against.
    """

    record_type: str
    record_id: Optional[RecordID] = None
    fields: dict[str, Any] = field(default_factory=dict)
    change_tag: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.fields[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def copy(self) -> "Record":
        """Copy with its own field values, so the store and callers never share state."""
        return Record(
            record_type=self.record_type,
            record_id=self.record_id,
            fields=copy.deepcopy(self.fields),
            change_tag=self.change_tag,
            created_at=self.created_at,
            modified_at=self.modified_at,
        )


@runtime_checkable
class CloudObject(Protocol):
    """
    Describes an application type that can be stored as a Record.

    from_record may raise ConversionError (or KeyError, TypeError,
    ValueError) when the record is missing fields or holds the wrong types.
    """

    record_type: ClassVar[str]
    record_id: Optional[RecordID]

    @classmethod
    def from_record(cls, record: Record) -> "CloudObject":
        ...

    def to_record(self) -> Record:
        ...


T = TypeVar("T", bound=CloudObject)
