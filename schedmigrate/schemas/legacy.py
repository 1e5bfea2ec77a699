"""
Legacy schemas - rows read from the old scheduler store.

LegacyRecord is a row of the scheduler task table holding a serialized,
now-obsolete task object. GenericRecord is the schema-less view of that
object once the reinterpreter has decoded it.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from schedmigrate.errors import UnmigratableRecordError

_MISSING = object()


class GenericRecord(Mapping[str, Any]):
    """
    Read-only mapping of a decoded object's fields.

    Field names and values mirror the serialized object exactly, in
    serialization order. Nested objects are GenericRecords themselves and
    arrays are plain dicts.
    """

    def __init__(self, class_name: str, fields: dict[str, Any]):
        self.class_name = class_name
        self._fields = dict(fields)

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"GenericRecord(class_name={self.class_name!r}, fields={self._fields!r})"

    def require(self, name: str) -> Any:
        """Return a field value, raising UnmigratableRecordError if absent."""
        value = self._fields.get(name, _MISSING)
        if value is _MISSING:
            raise UnmigratableRecordError(
                f"{self.class_name} record has no '{name}' field. "
                f"Fields present: {', '.join(self._fields) or '(none)'}"
            )
        return value

    def require_record(self, name: str) -> "GenericRecord":
        """Return a nested object field."""
        value = self.require(name)
        if not isinstance(value, GenericRecord):
            raise UnmigratableRecordError(
                f"Field '{name}' is {type(value).__name__}, expected a nested object"
            )
        return value


@dataclass(frozen=True)
class LegacyRecord:
    """
    A row of the legacy scheduler table.

    Attributes:
        uid: Primary key
        disabled: Value of the row's disable flag
        serialized_task_object: The serialized task blob
        row: All columns as read, bookkeeping included
    """
    uid: int
    disabled: bool
    serialized_task_object: bytes
    row: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LegacyRecord":
        """Build from a sqlite3.Row or dict of the task table."""
        blob = row["serialized_task_object"]
        if blob is None:
            blob = b""
        elif isinstance(blob, str):
            blob = blob.encode("utf-8")
        return cls(
            uid=int(row["uid"]),
            disabled=bool(row["disable"]),
            serialized_task_object=bytes(blob),
            row=dict(row),
        )
