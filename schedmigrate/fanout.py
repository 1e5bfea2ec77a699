"""Expand "all configurations" tasks into one task per configuration."""

import logging
import sqlite3

from schedmigrate.errors import StoreQueryError
from schedmigrate.schemas import CommandTask
from schedmigrate.translator import ALL_CONFIGURATIONS

logger = logging.getLogger(__name__)


class FanoutResolver:
    """
    Resolve a translated task template into concrete tasks.

    Registry entries are read lazily and cached, since every "all
    configurations" task in a run expands against the same registry. Call
    reset() before a new run to pick up registry changes.
    """

    def __init__(self, conn: sqlite3.Connection, registry_table: str):
        self.conn = conn
        self.registry_table = registry_table
        self._configurations: list[int] | None = None

    def reset(self) -> None:
        """Forget the cached registry; the next resolve() reads it again."""
        self._configurations = None

    def configurations(self) -> list[int]:
        """uids of the configuration registry, ascending."""
        if self._configurations is None:
            try:
                rows = self.conn.execute(
                    f'SELECT uid FROM "{self.registry_table}" ORDER BY uid'
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreQueryError(
                    f"Configuration registry query failed. Error was: {e}"
                ) from e
            self._configurations = [int(row["uid"]) for row in rows]
        return self._configurations

    def resolve(self, template: CommandTask, configuration: int) -> list[CommandTask]:
        """
        Args:
            template: Translated task, without configuration argument when
                configuration is ALL_CONFIGURATIONS
            configuration: The legacy configuration uid

        Returns:
            [template] for a single configuration, otherwise one copy per
            registry entry (empty when the registry is empty)
        """
        if configuration != ALL_CONFIGURATIONS:
            return [template]

        uids = self.configurations()
        if not uids:
            logger.warning(
                f"Task '{template.description}' targets all configurations "
                f"but {self.registry_table} is empty, no task will be created"
            )
        return [template.with_arguments(configuration=str(uid)) for uid in uids]
