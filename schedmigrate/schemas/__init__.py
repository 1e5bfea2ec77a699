"""
schedmigrate.schemas - Data structures for the scheduler task migration.

LegacyRecord -> GenericRecord -> CommandTask -> WriteOutcome -> MigrationReport

Lifecycle:
1. LegacyRecord: Row of the scheduler table holding an obsolete serialized task
2. GenericRecord: Schema-less view of the decoded blob, fields addressable by name
3. CommandTask: Translated task (one per target configuration after fan-out)
4. WriteOutcome: Result of persisting a CommandTask
5. MigrationReport: Totals of a run, including unmigratable rows
"""

from .legacy import (
    GenericRecord,
    LegacyRecord,
)
from .task import (
    CommandTask,
    ScheduleDescriptor,
    TASK_CLASS,
    EXECUTION_CLASS,
)
from .report import (
    MigrationReport,
    WriteOutcome,
)

__all__ = [
    # Legacy
    "GenericRecord",
    "LegacyRecord",
    # Task
    "CommandTask",
    "ScheduleDescriptor",
    "TASK_CLASS",
    "EXECUTION_CLASS",
    # Report
    "MigrationReport",
    "WriteOutcome",
]
