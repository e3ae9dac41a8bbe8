"""
Database connection and query utilities for the Postgres store.

Provides a small async interface over psycopg, returning rows as
dictionaries.

For testing, use set_connection_override() to inject a connection
that will be used instead of creating new ones. This enables
transaction rollback between tests.
"""

from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row

from cloudrecords.config import config

# =============================================================================
# Connection Override (for testing)
# =============================================================================

_connection_override: psycopg.AsyncConnection | None = None


def set_connection_override(conn: psycopg.AsyncConnection) -> None:
    """
    Set a connection to use instead of creating new ones.

    Used by test fixtures to ensure all database operations run
    within a single transaction that can be rolled back.

    Args:
        conn: The connection to use for all subsequent operations
    """
    global _connection_override
    _connection_override = conn


def clear_connection_override() -> None:
    """Clear the connection override, restoring normal behavior."""
    global _connection_override
    _connection_override = None


# =============================================================================
# Connection Management
# =============================================================================


@asynccontextmanager
async def get_connection():
    """
    Async context manager for database connections.

    In normal operation:
        - Opens a new connection
        - Commits on successful exit
        - Rolls back on exception
        - Closes connection when done

    With override set (testing):
        - Returns the override connection
        - Does NOT commit, rollback, or close
        - Caller (test fixture) manages the transaction

    Usage:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT ...")
    """
    if _connection_override is not None:
        yield _connection_override
        return

    conn = await psycopg.AsyncConnection.connect(config.database_url)
    try:
        yield conn
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    finally:
        await conn.close()


@asynccontextmanager
async def get_cursor():
    """
    Async context manager for a cursor with dict rows.

    Everything run on the cursor shares one transaction.

    Usage:
        async with get_cursor() as cur:
            await cur.execute("SELECT * FROM records")
            rows = await cur.fetchall()  # List of dicts
    """
    async with get_connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            yield cur


# =============================================================================
# Query Helpers
# =============================================================================


async def execute(query: str, params: tuple = None) -> int:
    """
    Execute a query without returning results.

    Args:
        query: SQL query with %s placeholders
        params: Tuple of parameter values

    Returns:
        Number of rows affected
    """
    async with get_cursor() as cur:
        await cur.execute(query, params)
        return cur.rowcount


async def fetch_one(query: str, params: tuple = None) -> dict[str, Any] | None:
    """
    Execute a query and return a single row as dict.

    Returns:
        Dict of column names to values, or None if no row found
    """
    async with get_cursor() as cur:
        await cur.execute(query, params)
        return await cur.fetchone()


async def fetch_all(query: str, params: tuple = None) -> list[dict[str, Any]]:
    """
    Execute a query and return all rows as list of dicts.

    Returns:
        List of dicts, empty list if no rows found
    """
    async with get_cursor() as cur:
        await cur.execute(query, params)
        return await cur.fetchall()
