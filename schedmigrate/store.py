"""
SQLite store access for the scheduler and registry tables.

The migration shares one connection between the locator, the fan-out
resolver and the writer. Rows come back as sqlite3.Row so columns are
addressable by name.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path


def connect(path: Path | str) -> sqlite3.Connection:
    """Open a connection with name-addressable rows."""
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def open_store(path: Path | str) -> Generator[sqlite3.Connection, None, None]:
    """
    Open the store for the duration of a block.

    Usage:
        with open_store(config.database_path) as conn:
            MigrateSchedulerTasks(conn, config).execute_update()
    """
    conn = connect(path)
    try:
        yield conn
    finally:
        conn.close()


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    ).fetchone()
    return row is not None
