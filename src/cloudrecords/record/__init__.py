"""
Record

Raw records, identifiers and the query vocabulary shared by stores and DAOs.
"""

from cloudrecords.record.model import (
    DEFAULT_ZONE,
    CloudObject,
    Partition,
    Record,
    RecordID,
)
from cloudrecords.record.query import (
    TRUEPREDICATE,
    And,
    Comparison,
    Cursor,
    Not,
    Or,
    Predicate,
    Query,
    SavePolicy,
    SortDescriptor,
    where,
)

__all__ = [
    "DEFAULT_ZONE",
    "CloudObject",
    "Partition",
    "Record",
    "RecordID",
    "TRUEPREDICATE",
    "And",
    "Comparison",
    "Cursor",
    "Not",
    "Or",
    "Predicate",
    "Query",
    "SavePolicy",
    "SortDescriptor",
    "where",
]
