"""Apply SQL migrations to the configured PostgreSQL database.

Each `.sql` file under `lumine/db/migrations/` is one migration, applied once and in filename
order. The names already applied are recorded in `schema_migrations`.

Usage:
    python -m lumine.db.migrate [--dry-run] [--recreate]
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import LiteralString, cast

import psycopg

from lumine.config.logging import configure_logging
from lumine.config.settings import load_settings
from lumine.db.connection import connect

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_TRACKING_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations
(
    filename   TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_DROP_ALL = """
DROP TABLE IF EXISTS transactions;
DROP TABLE IF EXISTS schema_migrations;
"""


@dataclass(frozen=True)
class Migration:
    name: str
    sql: str


def load_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Read every migration in `directory`, sorted by filename.

    Raises:
        RuntimeError: If the directory is missing or holds no `.sql` files.
    """

    if not directory.is_dir():
        raise RuntimeError(f"Migrations directory does not exist: {directory}")

    migrations = [
        Migration(name=path.name, sql=path.read_text(encoding="utf-8"))
        for path in sorted(directory.glob("*.sql"))
        if path.is_file()
    ]
    if not migrations:
        raise RuntimeError(f"No .sql migration files found in {directory}")
    return migrations


def pending(migrations: list[Migration], applied: set[str]) -> list[Migration]:
    return [m for m in migrations if m.name not in applied]


def _applied_names(conn: psycopg.Connection) -> set[str]:
    conn.execute(_TRACKING_DDL, prepare=False)
    return {row[0] for row in conn.execute("SELECT filename FROM schema_migrations", prepare=False)}


def apply(conn: psycopg.Connection, migration: Migration) -> None:
    """Run one migration and record it, atomically."""

    with conn.transaction():
        conn.execute(cast(LiteralString, migration.sql), prepare=False)
        conn.execute(
            "INSERT INTO schema_migrations(filename) VALUES (%s)",
            (migration.name,),
            prepare=False,
        )


def migrate(*, recreate: bool = False, dry_run: bool = False) -> list[str]:
    """Bring the database up to date; returns the names applied (or due, with `dry_run`)."""

    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required (set it in .env or environment)")

    migrations = load_migrations()

    with connect(settings.database_url, timezone=settings.app_timezone) as conn:
        if recreate and not dry_run:
            logger.warning("dropping tables before re-applying migrations")
            conn.execute(_DROP_ALL, prepare=False)

        todo = pending(migrations, _applied_names(conn))
        if dry_run:
            for migration in todo:
                logger.info("pending migration file=%s", migration.name)
            return [m.name for m in todo]

        for migration in todo:
            apply(conn, migration)
            logger.info("applied migration file=%s", migration.name)

    return [m.name for m in todo]


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply SQL migrations to Postgres.")
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop existing tables and re-apply all migrations (destructive).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List pending migrations without applying them.",
    )
    args = parser.parse_args()

    configure_logging()
    names = migrate(recreate=args.recreate, dry_run=args.dry_run)
    if not names:
        logger.info("database is up to date")


if __name__ == "__main__":
    main()
