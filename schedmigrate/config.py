"""
Configuration management for schedmigrate.

Loads and validates config.yaml from the schedmigrate home directory
($SCHEDMIGRATE_HOME, default ~/.config/schedmigrate).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from schedmigrate.errors import ConfigError
from schedmigrate.schemas.task import EXECUTION_CLASS, TASK_CLASS


LEGACY_CLASS_SIGNATURE = "Causal\\IgLdapSsoAuth\\Task\\ImportUsers"


@dataclass
class SchedmigrateConfig:
    """
    Complete migration configuration.

    Attributes:
        sqlite_path: Database holding the scheduler and registry tables
        legacy_table: Table holding the legacy serialized tasks
        task_table: Table the command tasks are written to
        registry_table: Configuration registry enumerated on fan-out
        legacy_class_signature: Class name identifying legacy task blobs
        command_identifier: Console command the new tasks run
        task_class: Class the new tasks are serialized as
        execution_class: Class the schedules are serialized as
        soft_delete_on_write_failure: Soft-delete a legacy row even when
            some of its derived tasks failed to write
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (rich console)
        log_file: Optional log file path
        env_file: Optional .env file loaded into the environment
    """
    sqlite_path: str
    legacy_table: str = "tx_scheduler_task"
    task_table: str = "tx_scheduler_task"
    registry_table: str = "tx_igldapssoauth_config"
    legacy_class_signature: str = LEGACY_CLASS_SIGNATURE
    command_identifier: str = "ldap:importusers"
    task_class: str = TASK_CLASS
    execution_class: str = EXECUTION_CLASS
    soft_delete_on_write_failure: bool = True
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    @property
    def database_path(self) -> Path:
        # $VARS may come from env_file
        return Path(os.path.expandvars(self.sqlite_path)).expanduser()

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.sqlite_path:
            raise ConfigError("sqlite_path is required")
        for name in ("legacy_table", "task_table", "registry_table"):
            table = getattr(self, name)
            if not table or not table.replace("_", "").isalnum():
                raise ConfigError(f"{name} is not a valid table name: {table!r}")
        if not self.legacy_class_signature:
            raise ConfigError("legacy_class_signature must not be empty")
        if self.log_format not in ("structured", "pretty"):
            raise ConfigError(
                f"log_format must be 'structured' or 'pretty', got {self.log_format!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SchedmigrateConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        if "sqlite_path" not in data:
            raise ConfigError("sqlite_path is required")
        config = cls(**data)
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def get_schedmigrate_home() -> Path:
    """Home directory holding config.yaml and .env."""
    env_home = os.environ.get("SCHEDMIGRATE_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path("~/.config/schedmigrate").expanduser()


def load_config(config_path: Optional[Path] = None) -> SchedmigrateConfig:
    """
    Load migration configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in
            get_schedmigrate_home()

    Returns:
        SchedmigrateConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If config is invalid
    """
    if config_path is None:
        config_path = get_schedmigrate_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"schedmigrate config.yaml not found at {config_path}. Run 'schedmigrate init'."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    config = SchedmigrateConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    return config
