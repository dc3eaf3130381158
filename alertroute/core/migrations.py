"""Alembic helpers for the deploy step and the readiness probe.

``alertroute-migrate`` runs ``run_migrations`` before the API starts; the
``/health/ready`` probe uses ``check_migrations_current`` so that a replica
is not put into rotation against a schema it does not expect.
"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from alertroute.database import get_engine
from alertroute.logging_config import get_logger

logger = get_logger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ALEMBIC_INI = _PROJECT_ROOT / "alembic.ini"
_SCRIPT_LOCATION = _PROJECT_ROOT / "migrations"


def get_alembic_config() -> Config:
    if not _ALEMBIC_INI.is_file():
        raise FileNotFoundError(f"No Alembic config at {_ALEMBIC_INI}")

    config = Config(str(_ALEMBIC_INI))
    config.set_main_option("script_location", str(_SCRIPT_LOCATION))
    return config


def get_head_revision() -> str | None:
    """Newest revision among the migration scripts."""
    return ScriptDirectory.from_config(get_alembic_config()).get_current_head()


def run_migrations() -> None:
    """Upgrade the configured database to head. Errors propagate."""
    head = get_head_revision()
    logger.info("Applying migrations", target=head)
    try:
        command.upgrade(get_alembic_config(), "head")
    except Exception:
        logger.exception("Migration run aborted", target=head)
        raise
    logger.info("Schema is at head", revision=head)


async def get_applied_revision() -> str | None:
    """Revision stored in ``alembic_version``.

    None when the table is missing, empty, or the database is unreachable.
    """
    try:
        async with get_engine().connect() as conn:
            row = (
                await conn.execute(text("SELECT version_num FROM alembic_version"))
            ).first()
    except (SQLAlchemyError, OSError):
        return None
    return row[0] if row else None


async def check_migrations_current() -> bool:
    applied = await get_applied_revision()
    return applied is not None and applied == get_head_revision()
