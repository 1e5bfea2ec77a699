"""
Task schemas - the command task records written by the migration.

A CommandTask is serialized as the scheduler's ExecuteSchedulableCommandTask,
with its ScheduleDescriptor nested as an Execution object. Property names
and order are the wire contract of the downstream scheduler, so to_php()
must not be reordered casually.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from schedmigrate.serialized import PhpObject, protected

TASK_CLASS = "TYPO3\\CMS\\Scheduler\\Task\\ExecuteSchedulableCommandTask"
EXECUTION_CLASS = "TYPO3\\CMS\\Scheduler\\Execution"


@dataclass
class ScheduleDescriptor:
    """
    Execution schedule of a task.

    Attributes:
        start: Unix timestamp of the first execution
        end: Unix timestamp after which the task no longer runs (0 = never)
        interval: Seconds between executions (0 = single or cron based)
        multiple: Whether parallel executions are allowed
        cron_cmd: Cron expression, takes precedence over interval
        is_new_single_execution: Run once at start, then clear the flag
    """
    start: int = 0
    end: int = 0
    interval: int = 0
    multiple: bool = False
    cron_cmd: str = ""
    is_new_single_execution: bool = False

    def to_php(self, class_name: str = EXECUTION_CLASS) -> PhpObject:
        return PhpObject(class_name, {
            protected("start"): self.start,
            protected("end"): self.end,
            protected("interval"): self.interval,
            protected("multiple"): self.multiple,
            protected("cronCmd"): self.cron_cmd,
            protected("isNewSingleExecution"): self.is_new_single_execution,
        })


@dataclass
class CommandTask:
    """
    A scheduler task running a console command.

    options declares which command options are set, option_values holds
    their values and defaults are what the command runner substitutes when
    an argument or option is omitted. arguments holds the concrete
    argument values (here the LDAP configuration uid).
    """
    description: str
    task_group: int
    execution: ScheduleDescriptor
    command_identifier: str
    options: dict[str, bool] = field(default_factory=dict)
    option_values: dict[str, Any] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    arguments: dict[str, str] = field(default_factory=dict)
    disabled: bool = False
    run_on_next_cron_job: bool = False
    execution_time: int = 0
    task_uid: Optional[int] = None

    def add_default_value(self, name: str, value: Any) -> None:
        self.defaults[name] = value

    def with_arguments(self, **arguments: str) -> "CommandTask":
        """Return a deep copy with its arguments replaced."""
        task = copy.deepcopy(self)
        task.arguments = dict(arguments)
        return task

    def to_php(
        self,
        class_name: str = TASK_CLASS,
        execution_class: str = EXECUTION_CLASS,
    ) -> PhpObject:
        # AbstractTask properties first, then the command task's own
        return PhpObject(class_name, {
            protected("taskUid"): self.task_uid if self.task_uid is not None else 0,
            protected("disabled"): self.disabled,
            protected("runOnNextCronJob"): self.run_on_next_cron_job,
            protected("execution"): self.execution.to_php(execution_class),
            protected("executionTime"): self.execution_time,
            protected("description"): self.description,
            protected("taskGroup"): self.task_group,
            protected("commandIdentifier"): self.command_identifier,
            protected("arguments"): dict(self.arguments),
            protected("options"): dict(self.options),
            protected("optionValues"): dict(self.option_values),
            protected("defaults"): dict(self.defaults),
        })
