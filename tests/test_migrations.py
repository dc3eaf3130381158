"""Tests for the migration chain (no database needed)."""

from unittest.mock import AsyncMock, patch

from alembic.script import ScriptDirectory

from alertroute.core.migrations import (
    check_migrations_current,
    get_alembic_config,
    get_head_revision,
    run_migrations,
)


def test_head_is_escalation_exhausted():
    assert get_head_revision() == "005_escalation_exhausted"


def test_linear_chain():
    script = ScriptDirectory.from_config(get_alembic_config())

    revisions = [r.revision for r in script.walk_revisions()]

    assert revisions == [
        "005_escalation_exhausted",
        "004_routing_history",
        "003_alerts",
        "002_responders",
        "001_users",
    ]


def test_run_migrations_upgrades_to_head():
    with patch("alertroute.core.migrations.command.upgrade") as upgrade:
        run_migrations()

    config, target = upgrade.call_args.args
    assert target == "head"
    assert config.get_main_option("script_location").endswith("migrations")


async def test_current_when_applied_matches_head():
    with patch(
        "alertroute.core.migrations.get_applied_revision",
        new_callable=AsyncMock,
        return_value="005_escalation_exhausted",
    ):
        assert await check_migrations_current() is True


async def test_not_current_when_behind():
    with patch(
        "alertroute.core.migrations.get_applied_revision",
        new_callable=AsyncMock,
        return_value="004_routing_history",
    ):
        assert await check_migrations_current() is False
