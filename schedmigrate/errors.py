"""
Error classes for schedmigrate.

These error types map onto the migration's failure tiers:
- StoreQueryError: Fatal - the legacy store could not be queried, abort the run
- UnserializeError: A blob is structurally invalid and cannot be decoded
- UnmigratableRecordError: A legacy row cannot be turned into a command task
- ScheduleError: No next execution can be computed for a schedule

Error handling contract:
- Store failures propagate out of the migration, they are never retried
- Unmigratable rows are reported and left in place, the run continues
- Schedule errors are absorbed by the writer (task is disabled instead)
- Write failures are values (WriteOutcome), not exceptions
"""


class SchedmigrateError(Exception):
    """Base exception for schedmigrate."""
    pass


class ConfigError(SchedmigrateError):
    """Configuration validation error."""
    pass


class StoreQueryError(SchedmigrateError):
    """
    Fatal store failure - do not retry.

    Raised when the legacy store or the configuration registry cannot be
    queried for a reason other than the table being absent. Carries a
    stable numeric code so administrators can look the failure up.
    """

    def __init__(self, message: str, code: int = 1511950673):
        super().__init__(message)
        self.code = code


class UnserializeError(SchedmigrateError, ValueError):
    """
    A serialized blob is malformed.

    Examples:
    - Length prefix does not match the string that follows
    - Truncated data or trailing bytes after the top-level value
    - Unsupported token (references, custom-serialized objects)
    """

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class UnmigratableRecordError(SchedmigrateError):
    """A legacy task row that cannot be migrated."""

    def __init__(self, message: str, uid: int | None = None):
        super().__init__(message)
        self.uid = uid


class ScheduleError(SchedmigrateError):
    """Next execution date cannot be computed (schedule out of bounds)."""
    pass
