import sqlite3

import pytest

from schedmigrate.config import SchedmigrateConfig
from schedmigrate.schemas import EXECUTION_CLASS
from schedmigrate.serialized import PhpObject, dumps, protected
from schedmigrate.store import connect

LEGACY_CLASS = "Causal\\IgLdapSsoAuth\\Task\\ImportUsers"

# Fixed execution time of a migration run
NOW = 1700000000

SCHEMA = """
CREATE TABLE tx_scheduler_task (
    uid INTEGER PRIMARY KEY AUTOINCREMENT,
    crdate INTEGER NOT NULL DEFAULT 0,
    disable INTEGER NOT NULL DEFAULT 0,
    deleted INTEGER NOT NULL DEFAULT 0,
    description TEXT,
    nextexecution INTEGER NOT NULL DEFAULT 0,
    lastexecution_time INTEGER NOT NULL DEFAULT 0,
    lastexecution_failure TEXT,
    lastexecution_context VARCHAR(3) NOT NULL DEFAULT '',
    serialized_task_object BLOB,
    serialized_executions BLOB,
    task_group INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE tx_igldapssoauth_config (
    uid INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT ''
);
"""


def legacy_task_blob(
    configuration=1,
    context="both",
    missing_users="nothing",
    restored_users="nothing",
    mode="import",
    description="Import LDAP users",
    task_group=0,
    execution=None,
) -> bytes:
    """Serialized ImportUsers task as the legacy scheduler stored it."""
    schedule = {
        "start": NOW - 100,
        "end": 0,
        "interval": 3600,
        "multiple": False,
        "cronCmd": "",
        "isNewSingleExecution": False,
    }
    schedule.update(execution or {})
    return dumps(PhpObject(LEGACY_CLASS, {
        protected("scheduler"): None,
        protected("taskUid"): 12,
        protected("disabled"): False,
        protected("runOnNextCronJob"): False,
        protected("execution"): PhpObject(
            EXECUTION_CLASS, {protected(k): v for k, v in schedule.items()}
        ),
        protected("executionTime"): NOW - 100,
        protected("description"): description,
        protected("taskGroup"): task_group,
        protected("mode"): mode,
        protected("context"): context,
        protected("configuration"): configuration,
        protected("missingUsersHandling"): missing_users,
        protected("restoredUsersHandling"): restored_users,
    }))


def insert_legacy_task(conn: sqlite3.Connection, blob: bytes, disable: int = 0, deleted: int = 0) -> int:
    with conn:
        cursor = conn.execute(
            "INSERT INTO tx_scheduler_task (crdate, disable, deleted, description, serialized_task_object) "
            "VALUES (?, ?, ?, ?, ?)",
            (NOW - 86400, disable, deleted, "legacy", sqlite3.Binary(blob)),
        )
    return cursor.lastrowid


def insert_configurations(conn: sqlite3.Connection, count: int) -> list[int]:
    with conn:
        return [
            conn.execute(
                "INSERT INTO tx_igldapssoauth_config (name) VALUES (?)", (f"LDAP {i}",)
            ).lastrowid
            for i in range(1, count + 1)
        ]


@pytest.fixture
def test_config(tmp_path):
    return SchedmigrateConfig(sqlite_path=str(tmp_path / "typo3.db"))


@pytest.fixture
def empty_db(test_config):
    """Connection to a database without any tables."""
    conn = connect(test_config.database_path)
    yield conn
    conn.close()


@pytest.fixture
def db(empty_db):
    """Connection to a database with the scheduler and registry tables."""
    empty_db.executescript(SCHEMA)
    return empty_db


@pytest.fixture
def clock():
    return lambda: NOW
