"""
Migrate legacy LDAP import scheduler tasks into console command tasks.

Pipeline per legacy row:
    LegacyTaskLocator -> cast_to_class -> TaskTranslator -> FanoutResolver
        -> TaskWriter.save (per task) -> TaskWriter.soft_delete

A legacy task configured for "all configurations" is split into one command
task per configuration in the registry. Legacy rows are only ever flagged
deleted, so running the migration again finds nothing left to do.
"""

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Optional

from schedmigrate.config import SchedmigrateConfig
from schedmigrate.errors import UnmigratableRecordError, UnserializeError
from schedmigrate.fanout import FanoutResolver
from schedmigrate.locator import LegacyTaskLocator
from schedmigrate.reinterpret import cast_to_class
from schedmigrate.schemas import CommandTask, LegacyRecord, MigrationReport
from schedmigrate.translator import TaskTranslator, configuration_uid
from schedmigrate.writer import TaskWriter

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


@dataclass
class PlannedMigration:
    """What migrating one legacy row would produce."""
    legacy: LegacyRecord
    tasks: list[CommandTask]
    error: Optional[str] = None


class MigrateSchedulerTasks:
    """
    Upgrade wizard turning legacy import tasks into command tasks.

    Usage:
        with open_store(config.database_path) as conn:
            wizard = MigrateSchedulerTasks(conn, config)
            if wizard.update_necessary():
                wizard.execute_update()
    """

    identifier = "schedmigrate.migrate_scheduler_tasks"
    title = "ig_ldap_sso_auth: Migrate scheduler tasks into console commands"
    description = (
        "Beware: this script will split scheduler tasks with configuration "
        '"all" into a scheduler task per configuration'
    )

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: SchedmigrateConfig,
        clock: Clock = system_clock,
    ):
        self.config = config
        self.clock = clock
        self.locator = LegacyTaskLocator(conn, config.legacy_table, config.legacy_class_signature)
        self.translator = TaskTranslator(config.command_identifier)
        self.resolver = FanoutResolver(conn, config.registry_table)
        self.writer = TaskWriter(conn, config)

    def update_necessary(self) -> bool:
        """True iff at least one legacy task is left to migrate."""
        return self.locator.exists()

    def derive_tasks(self, legacy: LegacyRecord) -> list[CommandTask]:
        """
        Reinterpret, translate and fan out one legacy row.

        Raises:
            UnmigratableRecordError: If the row's blob cannot be decoded or
                lacks required fields
        """
        try:
            record = cast_to_class(legacy.serialized_task_object)
            template = self.translator.translate(record)
            return self.resolver.resolve(template, configuration_uid(record))
        except UnserializeError as e:
            raise UnmigratableRecordError(f"Cannot decode serialized task: {e}", uid=legacy.uid) from e
        except UnmigratableRecordError as e:
            e.uid = legacy.uid
            raise

    def plan(self) -> list[PlannedMigration]:
        """Derive the tasks of every legacy row without writing anything."""
        self.resolver.reset()
        planned = []
        for legacy in self.locator.find():
            try:
                planned.append(PlannedMigration(legacy, self.derive_tasks(legacy)))
            except UnmigratableRecordError as e:
                planned.append(PlannedMigration(legacy, [], error=str(e)))
        return planned

    def run(self) -> MigrationReport:
        """
        Migrate every legacy task.

        Unmigratable rows are reported and left untouched. Rows whose tasks
        all wrote are soft-deleted; rows with failed writes are soft-deleted
        only when soft_delete_on_write_failure is set.

        Raises:
            StoreQueryError: If the legacy store cannot be queried
        """
        now = self.clock()
        report = MigrationReport()
        self.resolver.reset()
        legacy_records = self.locator.find()
        report.legacy_found = len(legacy_records)

        for legacy in legacy_records:
            try:
                tasks = self.derive_tasks(legacy)
            except UnmigratableRecordError as e:
                logger.error(
                    f"Legacy task {legacy.uid} cannot be migrated: {e}",
                    extra={"event": "legacy.unmigratable", "legacy_uid": legacy.uid},
                )
                report.unmigratable[legacy.uid] = str(e)
                continue

            outcomes = [self.writer.save(task, legacy, now) for task in tasks]
            report.outcomes.extend(outcomes)

            failed = [o for o in outcomes if not o.ok]
            if failed and not self.config.soft_delete_on_write_failure:
                logger.error(
                    f"Keeping legacy task {legacy.uid}: {len(failed)} of "
                    f"{len(outcomes)} task(s) failed to write"
                )
                report.kept.append(legacy.uid)
                continue
            if failed:
                lost = ", ".join(str(o.configuration) for o in failed)
                logger.warning(
                    f"Soft-deleting legacy task {legacy.uid} although "
                    f"{len(failed)} task(s) failed to write (configuration {lost})"
                )

            self.writer.soft_delete(legacy)
            report.soft_deleted.append(legacy.uid)

        logger.info(
            f"Migration finished: {report.legacy_found} legacy task(s), "
            f"{report.written} written, {report.failed} failed, "
            f"{len(report.unmigratable)} unmigratable",
            extra={"event": "migration.completed", "metadata": report.to_dict()},
        )
        return report

    def execute_update(self) -> bool:
        """Run the migration; False if any row or write did not migrate."""
        return self.run().success
