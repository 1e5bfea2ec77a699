"""Tests for fanning out "all configurations" tasks."""

import logging

import pytest

from schedmigrate.errors import StoreQueryError
from schedmigrate.fanout import FanoutResolver
from schedmigrate.schemas import CommandTask, ScheduleDescriptor

from conftest import insert_configurations


@pytest.fixture
def template():
    return CommandTask(
        description="Import LDAP users",
        task_group=0,
        execution=ScheduleDescriptor(start=100, interval=3600),
        command_identifier="ldap:importusers",
        option_values={"mode": "import"},
    )


class TestResolve:
    def test_single_configuration_is_passed_through(self, db, template):
        insert_configurations(db, 3)
        template.arguments = {"configuration": "2"}

        tasks = FanoutResolver(db, "tx_igldapssoauth_config").resolve(template, 2)

        assert tasks == [template]
        assert tasks[0] is template

    def test_all_configurations(self, db, template):
        uids = insert_configurations(db, 3)

        tasks = FanoutResolver(db, "tx_igldapssoauth_config").resolve(template, 0)

        assert [t.arguments for t in tasks] == [{"configuration": str(uid)} for uid in uids]
        assert all(t.option_values == {"mode": "import"} for t in tasks)
        assert template.arguments == {}

    def test_copies_are_independent(self, db, template):
        insert_configurations(db, 2)

        first, second = FanoutResolver(db, "tx_igldapssoauth_config").resolve(template, 0)
        first.execution.start = 999
        first.option_values["mode"] = "sync"

        assert second.execution.start == 100
        assert second.option_values["mode"] == "import"
        assert template.execution.start == 100

    def test_registry_is_ordered_by_uid(self, db, template):
        with db:
            db.execute("INSERT INTO tx_igldapssoauth_config (uid, name) VALUES (9, 'b')")
            db.execute("INSERT INTO tx_igldapssoauth_config (uid, name) VALUES (4, 'a')")

        tasks = FanoutResolver(db, "tx_igldapssoauth_config").resolve(template, 0)

        assert [t.arguments["configuration"] for t in tasks] == ["4", "9"]

    def test_empty_registry(self, db, template, caplog):
        with caplog.at_level(logging.WARNING, logger="schedmigrate"):
            tasks = FanoutResolver(db, "tx_igldapssoauth_config").resolve(template, 0)

        assert tasks == []
        assert "is empty" in caplog.text

    def test_missing_registry_table(self, empty_db, template):
        with pytest.raises(StoreQueryError, match="Configuration registry query failed"):
            FanoutResolver(empty_db, "tx_igldapssoauth_config").resolve(template, 0)


class TestConfigurations:
    def test_registry_is_read_once(self, db):
        insert_configurations(db, 2)
        resolver = FanoutResolver(db, "tx_igldapssoauth_config")

        assert resolver.configurations() == [1, 2]
        insert_configurations(db, 1)
        assert resolver.configurations() == [1, 2]

    def test_reset_rereads_registry(self, db):
        insert_configurations(db, 2)
        resolver = FanoutResolver(db, "tx_igldapssoauth_config")
        resolver.configurations()

        insert_configurations(db, 1)
        resolver.reset()

        assert resolver.configurations() == [1, 2, 3]
