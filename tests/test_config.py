import os
import pytest
import yaml
from pathlib import Path
from schedmigrate.config import (
    LEGACY_CLASS_SIGNATURE,
    SchedmigrateConfig,
    get_schedmigrate_home,
    load_config,
)
from schedmigrate.errors import ConfigError
from schedmigrate.schemas import EXECUTION_CLASS, TASK_CLASS

def test_get_schedmigrate_home_default(monkeypatch):
    monkeypatch.delenv("SCHEDMIGRATE_HOME", raising=False)
    home = get_schedmigrate_home()
    assert home == Path("~/.config/schedmigrate").expanduser()

def test_get_schedmigrate_home_env_var(monkeypatch, tmp_path):
    custom_home = tmp_path / "custom_home"
    monkeypatch.setenv("SCHEDMIGRATE_HOME", str(custom_home))
    assert get_schedmigrate_home() == custom_home

def test_load_config_missing_file(monkeypatch, tmp_path):
    monkeypatch.setenv("SCHEDMIGRATE_HOME", str(tmp_path))
    with pytest.raises(FileNotFoundError, match="schedmigrate config.yaml not found"):
        load_config()

def test_load_config_valid(monkeypatch, tmp_path):
    monkeypatch.setenv("SCHEDMIGRATE_HOME", str(tmp_path))
    config_path = tmp_path / "config.yaml"

    config_data = {
        "sqlite_path": "~/typo3.db",
        "registry_table": "tx_ldap_config",
        "soft_delete_on_write_failure": False,
        "log_format": "structured",
    }
    config_path.write_text(yaml.dump(config_data))

    cfg = load_config()
    assert isinstance(cfg, SchedmigrateConfig)
    assert cfg.database_path == Path("~/typo3.db").expanduser()
    assert cfg.registry_table == "tx_ldap_config"
    assert cfg.soft_delete_on_write_failure is False
    assert cfg.log_format == "structured"

def test_defaults(tmp_path):
    cfg = SchedmigrateConfig(sqlite_path=str(tmp_path / "typo3.db"))
    assert cfg.legacy_table == "tx_scheduler_task"
    assert cfg.task_table == "tx_scheduler_task"
    assert cfg.registry_table == "tx_igldapssoauth_config"
    assert cfg.legacy_class_signature == LEGACY_CLASS_SIGNATURE
    assert cfg.command_identifier == "ldap:importusers"
    assert cfg.task_class == TASK_CLASS
    assert cfg.execution_class == EXECUTION_CLASS
    assert cfg.soft_delete_on_write_failure is True

def test_load_config_explicit_path(tmp_path):
    config_path = tmp_path / "elsewhere.yaml"
    config_path.write_text(yaml.dump({"sqlite_path": "/srv/typo3.db"}))

    cfg = load_config(config_path)
    assert cfg.database_path == Path("/srv/typo3.db")

def test_load_config_with_env_file(monkeypatch, tmp_path):
    monkeypatch.setenv("SCHEDMIGRATE_HOME", str(tmp_path))
    config_path = tmp_path / "config.yaml"
    env_file = tmp_path / ".env.test"

    env_file.write_text("TYPO3_ROOT=/var/www/typo3")

    config_data = {
        "sqlite_path": "$TYPO3_ROOT/typo3.db",
        "env_file": str(env_file)
    }
    config_path.write_text(yaml.dump(config_data))

    # Pre-clean env var
    monkeypatch.delenv("TYPO3_ROOT", raising=False)

    cfg = load_config()
    assert os.environ.get("TYPO3_ROOT") == "/var/www/typo3"
    assert cfg.database_path == Path("/var/www/typo3/typo3.db")

def test_load_config_missing_sqlite_path(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump({"log_level": "DEBUG"}))
    with pytest.raises(ConfigError, match="sqlite_path is required"):
        load_config(config_path)

def test_load_config_unknown_key(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump({"sqlite_path": "s", "project": "lifeos"}))
    with pytest.raises(ConfigError, match="Unknown configuration keys: project"):
        load_config(config_path)

def test_load_config_empty_file(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("")
    with pytest.raises(ConfigError, match="empty"):
        load_config(config_path)

def test_load_config_invalid_yaml(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("sqlite_path: [unclosed")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(config_path)

def test_load_config_not_a_mapping(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- sqlite_path\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(config_path)

@pytest.mark.parametrize("overrides,message", [
    ({"registry_table": "tx; DROP TABLE x"}, "registry_table"),
    ({"legacy_table": ""}, "legacy_table"),
    ({"legacy_class_signature": ""}, "legacy_class_signature"),
    ({"log_format": "xml"}, "log_format"),
])
def test_validate_rejects(overrides, message):
    with pytest.raises(ConfigError, match=message):
        SchedmigrateConfig.from_dict({"sqlite_path": "s", **overrides})

def test_to_dict_round_trips(tmp_path):
    cfg = SchedmigrateConfig(sqlite_path="s", log_file=str(tmp_path / "run.log"))
    assert SchedmigrateConfig.from_dict(cfg.to_dict()) == cfg
