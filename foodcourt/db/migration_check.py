from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from foodcourt.config import settings
from foodcourt.db.base import Base
from foodcourt.observability import log_event

VERSION_TABLE = "alembic_version"
PACKAGE_ROOT = Path(__file__).resolve().parent


def get_alembic_config() -> Config:
    # alembic.ini lives at the project root; migrations ship inside the package.
    config = Config(str(PACKAGE_ROOT.parents[1] / "alembic.ini"))
    config.set_main_option("script_location", str(PACKAGE_ROOT / "migrations"))
    return config


def get_alembic_head_revision() -> str:
    return ScriptDirectory.from_config(get_alembic_config()).get_current_head()


def get_current_db_revision(engine: Engine) -> Optional[str]:
    if not inspect(engine).has_table(VERSION_TABLE):
        return None
    with engine.connect() as connection:
        return connection.execute(
            text(f"SELECT version_num FROM {VERSION_TABLE} LIMIT 1")
        ).scalar_one_or_none()


def assert_db_is_up_to_date(engine: Engine) -> None:
    head = get_alembic_head_revision()
    current = get_current_db_revision(engine)
    if current == head:
        log_event("schema_revision_verified", revision=head)
        return
    log_event("schema_revision_mismatch", current=current, head=head)
    raise RuntimeError(
        f"Database schema not up to date (at {current or 'no revision'}, head is {head}). "
        "Run: alembic upgrade head"
    )


def maybe_create_schema(engine: Engine) -> None:
    """Create tables from model metadata for local development databases."""
    if not settings.auto_create_schema:
        return
    if settings.require_migrations:
        raise RuntimeError("AUTO_CREATE_SCHEMA must be disabled when REQUIRE_MIGRATIONS is set")

    Base.metadata.create_all(bind=engine)
    log_event("schema_created_from_metadata", tables=len(Base.metadata.tables))
