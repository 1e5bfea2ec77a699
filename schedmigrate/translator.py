"""
Translate reinterpreted legacy import tasks into command tasks.

The legacy ImportUsers task kept its settings as properties; the command
task passes them as options of the ldap:importusers console command. Legacy
enumerated values are translated with the tables below, matched
case-insensitively. Values without an entry are lowercased as they are.
"""

import logging
from typing import Any

from schedmigrate.errors import UnmigratableRecordError
from schedmigrate.schemas import CommandTask, GenericRecord, ScheduleDescriptor

logger = logging.getLogger(__name__)

# Sentinel of the legacy "configuration" field meaning "every configuration"
ALL_CONFIGURATIONS = 0

# option name -> legacy property
OPTION_SOURCES = {
    "mode": "mode",
    "context": "context",
    "missing-users": "missingUsersHandling",
    "restored-users": "restoredUsersHandling",
}

# option name -> {legacy value: new value}; None means copied verbatim
VALUE_TRANSLATIONS: dict[str, dict[str, str] | None] = {
    "mode": None,
    "context": {"both": "all"},
    "missing-users": {"nothing": "ignore"},
    "restored-users": {"nothing": "ignore"},
}

DEFAULT_VALUES = {
    "configuration": None,
    "mode": "import",
    "context": "all",
    "missing-users": "disable",
    "restored-users": "ignore",
}

# legacy Execution property -> ScheduleDescriptor attribute
EXECUTION_FIELDS = {
    "start": "start",
    "end": "end",
    "interval": "interval",
    "multiple": "multiple",
    "cronCmd": "cron_cmd",
    "isNewSingleExecution": "is_new_single_execution",
}


def translate_value(option: str, value: Any) -> Any:
    """Translate a legacy option value, see VALUE_TRANSLATIONS."""
    table = VALUE_TRANSLATIONS[option]
    if table is None:
        return value
    normalized = str(value).lower()
    return table.get(normalized, normalized)


def configuration_uid(record: GenericRecord) -> int:
    """The legacy configuration uid, 0 meaning all configurations."""
    value = record.require("configuration")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UnmigratableRecordError(f"Invalid configuration value: {value!r}")


def _as_int(value: Any, name: str) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UnmigratableRecordError(f"Schedule field '{name}' is not numeric: {value!r}")


def schedule_from_record(execution: GenericRecord) -> ScheduleDescriptor:
    """Copy the schedule fields of a reinterpreted Execution object."""
    values = {attr: execution.get(name) for name, attr in EXECUTION_FIELDS.items()}
    return ScheduleDescriptor(
        start=_as_int(values["start"], "start"),
        end=_as_int(values["end"], "end"),
        interval=_as_int(values["interval"], "interval"),
        multiple=bool(values["multiple"]),
        cron_cmd=values["cron_cmd"] or "",
        is_new_single_execution=bool(values["is_new_single_execution"]),
    )


class TaskTranslator:
    """Build the command task template of a legacy import task."""

    def __init__(self, command_identifier: str = "ldap:importusers"):
        self.command_identifier = command_identifier

    def translate(self, record: GenericRecord) -> CommandTask:
        """
        Translate a reinterpreted legacy task.

        The configuration argument is only set when the legacy task targets
        a single configuration; for ALL_CONFIGURATIONS it is left to the
        fan-out resolver.

        Raises:
            UnmigratableRecordError: If a required legacy field is missing
        """
        task = CommandTask(
            description=record.get("description") or "",
            task_group=_as_int(record.get("taskGroup"), "taskGroup"),
            execution=schedule_from_record(record.require_record("execution")),
            command_identifier=self.command_identifier,
        )

        task.options = {option: True for option in OPTION_SOURCES}
        task.option_values = {
            option: translate_value(option, record.require(prop))
            for option, prop in OPTION_SOURCES.items()
        }
        for name, value in DEFAULT_VALUES.items():
            task.add_default_value(name, value)

        configuration = configuration_uid(record)
        if configuration != ALL_CONFIGURATIONS:
            task.arguments = {"configuration": str(configuration)}

        logger.debug(
            f"Translated task '{task.description}' "
            f"(configuration={configuration}, options={task.option_values})"
        )
        return task
