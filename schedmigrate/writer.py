"""
Persist command tasks and retire the legacy rows they replace.

A task row is written in two steps inside one transaction: the row is
inserted with an empty blob to obtain its uid, then the task (which embeds
that uid) is serialized and stored on the row. Either both happen or
neither does.
"""

import logging
import sqlite3

from schedmigrate.config import SchedmigrateConfig
from schedmigrate.errors import StoreQueryError
from schedmigrate.scheduling import next_due_execution
from schedmigrate.schemas import CommandTask, LegacyRecord, WriteOutcome
from schedmigrate.serialized import dumps

logger = logging.getLogger(__name__)


class TaskWriter:
    """Write command tasks to the task table."""

    def __init__(self, conn: sqlite3.Connection, config: SchedmigrateConfig):
        self.conn = conn
        self.config = config

    def compute_execution_time(self, task: CommandTask, now: int) -> int:
        """
        Next execution of a task, falling back to disabled.

        A schedule that cannot produce a next execution must not block the
        migration: the task is disabled and 0 is returned instead.
        """
        try:
            if task.run_on_next_cron_job:
                execution_time = now
            else:
                execution_time = next_due_execution(task.execution, now)
        except Exception as e:
            logger.warning(
                f"Cannot compute next execution of task '{task.description}': {e}. "
                "Task will be disabled."
            )
            task.disabled = True
            return 0

        task.execution_time = execution_time
        return execution_time

    def serialize(self, task: CommandTask) -> bytes:
        return dumps(task.to_php(self.config.task_class, self.config.execution_class))

    def save(self, task: CommandTask, legacy: LegacyRecord, now: int) -> WriteOutcome:
        """
        Insert a task derived from a legacy row.

        The new row inherits the legacy row's disable flag, not the task's
        own disabled state.

        Returns:
            WriteOutcome; store errors are reported there, never raised
        """
        next_execution = self.compute_execution_time(task, now)
        configuration = task.arguments.get("configuration")
        table = self.config.task_table

        fields = {
            "crdate": now,
            "nextexecution": next_execution,
            "disable": int(legacy.disabled),
            "description": task.description,
            "task_group": task.task_group,
            "serialized_task_object": "",
        }
        columns = ", ".join(fields)
        placeholders = ", ".join("?" * len(fields))

        try:
            with self.conn:
                cursor = self.conn.execute(
                    f'INSERT INTO "{table}" ({columns}) VALUES ({placeholders})',
                    tuple(fields.values()),
                )
                task.task_uid = int(cursor.lastrowid)
                self.conn.execute(
                    f'UPDATE "{table}" SET serialized_task_object = ? WHERE uid = ?',
                    (sqlite3.Binary(self.serialize(task)), task.task_uid),
                )
        except sqlite3.Error as e:
            logger.error(
                f"Failed to write task for legacy task {legacy.uid} "
                f"(configuration={configuration}): {e}",
                extra={"event": "task.write_failed", "legacy_uid": legacy.uid},
            )
            task.task_uid = None
            return WriteOutcome(
                ok=False,
                legacy_uid=legacy.uid,
                next_execution=next_execution,
                configuration=configuration,
                error=str(e),
            )

        logger.info(
            f"Wrote task {task.task_uid} from legacy task {legacy.uid} "
            f"(configuration={configuration}, nextexecution={next_execution})",
            extra={"event": "task.written", "legacy_uid": legacy.uid, "task_uid": task.task_uid},
        )
        return WriteOutcome(
            ok=True,
            legacy_uid=legacy.uid,
            task_uid=task.task_uid,
            next_execution=next_execution,
            configuration=configuration,
        )

    def soft_delete(self, legacy: LegacyRecord) -> None:
        """Flag a legacy row as deleted; the row itself is kept."""
        try:
            with self.conn:
                self.conn.execute(
                    f'UPDATE "{self.config.legacy_table}" SET deleted = 1 WHERE uid = ?',
                    (legacy.uid,),
                )
        except sqlite3.Error as e:
            raise StoreQueryError(
                f"Could not soft-delete legacy task {legacy.uid}. Error was: {e}"
            ) from e
        logger.info(
            f"Soft-deleted legacy task {legacy.uid}",
            extra={"event": "legacy.soft_deleted", "legacy_uid": legacy.uid},
        )
