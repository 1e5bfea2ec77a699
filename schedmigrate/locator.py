"""Locate legacy task rows in the scheduler table."""

import logging
import sqlite3

from schedmigrate.errors import StoreQueryError
from schedmigrate.schemas import LegacyRecord
from schedmigrate.store import table_exists

logger = logging.getLogger(__name__)


class LegacyTaskLocator:
    """
    Find non-deleted rows whose serialized task names the legacy class.

    The blob is searched as raw bytes with instr(), so the match holds for
    BLOB values and for signatures after NUL-prefixed property names.
    A missing table means there is nothing to migrate. Any other store
    failure is fatal and raised as StoreQueryError.
    """

    def __init__(self, conn: sqlite3.Connection, table: str, signature: str):
        self.conn = conn
        self.table = table
        self.signature = signature

    def _query(self, columns: str, limit: int | None = None) -> list[sqlite3.Row]:
        sql = (
            f'SELECT {columns} FROM "{self.table}" '
            "WHERE instr(serialized_task_object, ?) > 0 "
            "AND deleted = 0 ORDER BY uid"
        )
        if limit is not None:
            sql += f" LIMIT {int(limit)}"

        try:
            if not table_exists(self.conn, self.table):
                logger.info(f"Table {self.table} does not exist, nothing to migrate")
                return []
            return self.conn.execute(sql, (self.signature.encode("utf-8"),)).fetchall()
        except sqlite3.Error as e:
            raise StoreQueryError(f"Database query failed. Error was: {e}") from e

    def find(self) -> list[LegacyRecord]:
        """Return every matching legacy row, ordered by uid."""
        records = [LegacyRecord.from_row(row) for row in self._query("*")]
        logger.info(f"Found {len(records)} legacy task(s) in {self.table}")
        return records

    def exists(self) -> bool:
        """True iff at least one matching legacy row remains."""
        return bool(self._query("uid", limit=1))
