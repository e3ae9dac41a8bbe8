"""
cloudrecords

A thin data-access layer mapping typed application objects to records in
a remote record store.
"""

from cloudrecords.dao import DAO, Page
from cloudrecords.errors import (
    CloudRecordsError,
    ConversionError,
    InvalidIdentifierError,
    NotFoundError,
    StoreError,
)
from cloudrecords.manager import ConnectionManager
from cloudrecords.record import (
    TRUEPREDICATE,
    CloudObject,
    Cursor,
    Partition,
    Record,
    RecordID,
    SavePolicy,
    SortDescriptor,
    where,
)

__version__ = "0.1.0"

__all__ = [
    "DAO",
    "Page",
    "CloudRecordsError",
    "ConversionError",
    "InvalidIdentifierError",
    "NotFoundError",
    "StoreError",
    "ConnectionManager",
    "TRUEPREDICATE",
    "CloudObject",
    "Cursor",
    "Partition",
    "Record",
    "RecordID",
    "SavePolicy",
    "SortDescriptor",
    "where",
]
