"""
Report schemas - outcomes of writing tasks and of a whole migration run.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class WriteOutcome:
    """
    Result of persisting one command task.

    Attributes:
        ok: Whether the insert and blob update were committed
        legacy_uid: uid of the legacy row the task was derived from
        task_uid: uid assigned to the new row (None if the insert failed)
        next_execution: Computed next execution (0 when disabled by fallback)
        configuration: The task's configuration argument
        error: Store error message if ok is False
    """
    ok: bool
    legacy_uid: int
    task_uid: Optional[int] = None
    next_execution: int = 0
    configuration: Optional[str] = None
    error: Optional[str] = None


@dataclass
class MigrationReport:
    """Totals of a migration run."""
    legacy_found: int = 0
    outcomes: list[WriteOutcome] = field(default_factory=list)
    unmigratable: dict[int, str] = field(default_factory=dict)
    soft_deleted: list[int] = field(default_factory=list)
    kept: list[int] = field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.unmigratable

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for structured log output."""
        return {
            "legacy_found": self.legacy_found,
            "written": self.written,
            "failed": self.failed,
            "unmigratable": {str(uid): reason for uid, reason in self.unmigratable.items()},
            "soft_deleted": list(self.soft_deleted),
            "kept": list(self.kept),
            "success": self.success,
        }
