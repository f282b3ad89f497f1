"""
Apply Alembic migrations for the vendor CRM database.

Usage:
    python -m vendor_crm.scripts.run_migrations [--revision REV]
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect


logger = logging.getLogger("scripts.run_migrations")

PROJECT_ROOT = Path(__file__).resolve().parents[2]
# Revision whose schema matches Base.metadata.create_all() output
BASELINE_REVISION = "20261019_01"


def _build_alembic_config() -> Config:
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")
    cfg = Config(str(alembic_ini))
    cfg.attributes["configure_logger"] = False
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def _unversioned_tables(db_url: str) -> set[str]:
    """Tables present in a database that has no alembic_version table yet."""
    engine = create_engine(db_url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    return set() if "alembic_version" in tables else tables


def run_migrations_to_head(revision: str = "head") -> None:
    cfg = _build_alembic_config()
    db_url = cfg.get_main_option("sqlalchemy.url")
    if db_url and "auto_approval_rules" in _unversioned_tables(db_url):
        logger.info("Stamping create_all schema at %s", BASELINE_REVISION)
        command.stamp(cfg, BASELINE_REVISION)
    command.upgrade(cfg, revision)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--revision", default="head", help="target revision (default: head)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        run_migrations_to_head(args.revision)
    except Exception as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    logger.info("Database upgraded to %s", args.revision)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
