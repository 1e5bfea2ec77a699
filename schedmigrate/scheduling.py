"""
Next-due execution of a task schedule.

Mirrors how the scheduler runtime decides when a task runs next, so a
migrated task is picked up exactly when the runtime would have scheduled it.
All times are Unix timestamps; ``now`` is passed in by the caller.
"""

from datetime import datetime

from croniter import croniter

from schedmigrate.errors import ScheduleError
from schedmigrate.schemas import ScheduleDescriptor


def is_ended(execution: ScheduleDescriptor, now: int) -> bool:
    return bool(execution.end) and execution.end < now


def is_started(execution: ScheduleDescriptor, now: int) -> bool:
    return execution.start < now


def next_cron_execution(cron_cmd: str, now: int) -> int:
    """First cron match strictly after now, in local time."""
    if not croniter.is_valid(cron_cmd):
        raise ScheduleError(f"Invalid cron expression: {cron_cmd!r}")
    # croniter reads naive datetimes as UTC
    base = datetime.fromtimestamp(now).astimezone()
    return int(croniter(cron_cmd, base).get_next(float))


def next_due_execution(execution: ScheduleDescriptor, now: int) -> int:
    """
    Compute the next execution of a schedule.

    A new single execution runs at its start date, once; computing it
    clears the flag on the descriptor.

    Raises:
        ScheduleError: If the schedule has ended or its next run would be
            past the end date
    """
    if execution.is_new_single_execution:
        execution.is_new_single_execution = False
        return execution.start

    if is_ended(execution, now):
        raise ScheduleError("Task is past end date.")

    if not is_started(execution, now):
        return execution.start

    if execution.cron_cmd:
        date = next_cron_execution(execution.cron_cmd, now)
    elif execution.interval == 0:
        # Single execution
        date = execution.start
    else:
        date = now + execution.interval - (now - execution.start) % execution.interval

    if execution.end and date > execution.end:
        raise ScheduleError("Next execution date is past end date.")
    return date
