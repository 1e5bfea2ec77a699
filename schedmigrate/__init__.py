"""
schedmigrate - Scheduler task migration

Migrates legacy LDAP user-import scheduler tasks, stored as serialized
objects of a class that no longer exists, into console command tasks.
"""

__version__ = "0.1.0"


__all__ = ["SchedmigrateConfig", "load_config", "get_schedmigrate_home", "MigrateSchedulerTasks"]

from .config import SchedmigrateConfig, load_config, get_schedmigrate_home
from .migration import MigrateSchedulerTasks
