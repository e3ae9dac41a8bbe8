# src/cloudrecords/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
This file provides fixtures available to all tests in the package.

DAO and manager tests run against the in-memory store. Postgres store
tests need a database at DATABASE_URL and are skipped when it is
unreachable.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["CLOUDRECORDS_ENV"] = "test"

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Optional

import psycopg
import pytest
import pytest_asyncio

from cloudrecords import db
from cloudrecords.config import config
from cloudrecords.dao import DAO
from cloudrecords.errors import ConversionError
from cloudrecords.manager import ConnectionManager
from cloudrecords.record import Partition, Record, RecordID

# =============================================================================
# Sample Record Type
# =============================================================================


@dataclass
class Note:
    """Minimal CloudObject used throughout the tests."""

    record_type: ClassVar[str] = "Note"

    title: str
    body: str = ""
    priority: int = 0
    tags: list = field(default_factory=list)
    record_id: Optional[RecordID] = None
    change_tag: Optional[str] = None

    @classmethod
    def from_record(cls, record: Record) -> "Note":
        title = record["title"]
        if not isinstance(title, str):
            raise ConversionError(cls.record_type, reason="title must be a string")
        return cls(
            title=title,
            body=record.get("body", ""),
            priority=int(record.get("priority", 0)),
            tags=list(record.get("tags", [])),
            record_id=record.record_id,
            change_tag=record.change_tag,
        )

    def to_record(self) -> Record:
        return Record(
            record_type=self.record_type,
            record_id=self.record_id,
            fields={
                "title": self.title,
                "body": self.body,
                "priority": self.priority,
                "tags": list(self.tags),
            },
            change_tag=self.change_tag,
        )


@pytest.fixture
def note_type():
    """The Note class, for tests that build records or objects directly."""
    return Note


# =============================================================================
# Manager / Store Fixtures
# =============================================================================


@pytest.fixture
def manager() -> ConnectionManager:
    """A fresh manager over an in-memory container."""
    return ConnectionManager(identifier="test", backend="memory")


@pytest.fixture
def store(manager):
    """The in-memory store for the manager's selected (public) partition."""
    return manager.current_database()


@pytest.fixture
def note_dao(manager) -> DAO:
    """Provide a DAO for Note records."""
    return DAO(Note, manager)


# =============================================================================
# Seed Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def sample_note(note_dao) -> Note:
    """Save a single note and return the stored copy."""
    return await note_dao.save(Note(title="Groceries", body="milk, eggs", priority=2, tags=["home"]))


@pytest_asyncio.fixture
async def sample_notes(note_dao) -> list[Note]:
    """
    Save 25 notes titled "Note 00" .. "Note 24".

    priority cycles 0, 1, 2 so predicates can select subsets.
    """
    return [
        await note_dao.save(Note(title=f"Note {i:02d}", priority=i % 3))
        for i in range(25)
    ]


# =============================================================================
# Postgres Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_db():
    """
    Apply the schema to the database at DATABASE_URL once per session.

    Skips dependent tests when the database cannot be reached.
    """
    try:
        conn = psycopg.connect(config.database_url, connect_timeout=3)
    except psycopg.OperationalError as e:
        pytest.skip(f"Postgres not available: {e}")

    migrations_dir = Path(__file__).parent.parent.parent / "migrations"
    schema_file = migrations_dir / "001_initial_schema.sql"

    if not schema_file.exists():
        raise FileNotFoundError(f"Migration file not found: {schema_file}")

    with conn:
        with conn.cursor() as cur:
            cur.execute(schema_file.read_text())
        conn.commit()

    yield config.database_url


@pytest_asyncio.fixture
async def db_connection(test_db):
    """
    Provide an async connection with transaction rollback.

    Each test runs in a transaction that is rolled back at the end,
    ensuring tests don't affect each other.
    """
    conn = await psycopg.AsyncConnection.connect(config.database_url)

    # Clean slate before each test
    await conn.execute("TRUNCATE records RESTART IDENTITY")
    await conn.commit()

    # Override the db module to use this connection
    db.set_connection_override(conn)

    yield conn

    # Rollback any changes made during the test
    await conn.rollback()
    db.clear_connection_override()
    await conn.close()


@pytest.fixture
def pg_manager(db_connection) -> ConnectionManager:
    """A manager over the Postgres backend."""
    return ConnectionManager(identifier="test", partition=Partition.PRIVATE, backend="postgres")


@pytest.fixture
def pg_note_dao(pg_manager) -> DAO:
    return DAO(Note, pg_manager)
