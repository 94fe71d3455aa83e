"""
Forward-only migration runner for dbmate-format SQL files.

Files live in `db/migrations/<version>_<name>.sql`; only the `-- migrate:up`
section is applied. Applied versions are recorded in dbmate's
`schema_migrations` table, so either this runner or the `dbmate` binary can
be used against the same database.

Usage:
    python -m core.migrations            # DATABASE_URL
    python -m core.migrations --test     # DATABASE_TEST_URL
    python -m core.migrations --all      # both
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path

import asyncpg

from .config import Settings, get_settings, sanitize_database_url
from .logging import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path("db") / "migrations"

_FILENAME_RE = re.compile(r"^(?P<version>\d+)_(?P<name>[\w-]+)\.sql$")
_UP_MARKER = "-- migrate:up"
_DOWN_MARKER = "-- migrate:down"


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    path: Path

    def up_sql(self) -> str:
        text = self.path.read_text(encoding="utf-8")
        start = text.find(_UP_MARKER)
        if start == -1:
            raise ValueError(f"{self.path.name}: missing '{_UP_MARKER}' section.")
        body = text[start + len(_UP_MARKER):]
        end = body.find(_DOWN_MARKER)
        if end != -1:
            body = body[:end]
        return body.strip()


def discover(migrations_dir: Path) -> list[Migration]:
    migrations: list[Migration] = []
    for path in sorted(migrations_dir.glob("*.sql")):
        match = _FILENAME_RE.match(path.name)
        if match is None:
            logger.warning("skipping file with unexpected name: %s", path.name)
            continue
        migrations.append(Migration(match["version"], match["name"], path))
    return migrations


async def migrate(dsn: str, migrations_dir: Path = DEFAULT_MIGRATIONS_DIR) -> list[str]:
    """
    Apply pending migrations in version order. Returns the applied versions.
    """
    migrations = discover(migrations_dir)
    applied_now: list[str] = []

    conn = await asyncpg.connect(dsn=sanitize_database_url(dsn))
    try:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version varchar(128) PRIMARY KEY
            )
            """
        )
        rows = await conn.fetch("SELECT version FROM schema_migrations")
        already = {str(r["version"]) for r in rows}

        for migration in migrations:
            if migration.version in already:
                continue
            async with conn.transaction():
                await conn.execute(migration.up_sql())
                await conn.execute(
                    "INSERT INTO schema_migrations (version) VALUES ($1)",
                    migration.version,
                )
            logger.info("migration_applied version=%s name=%s", migration.version, migration.name)
            applied_now.append(migration.version)
    finally:
        await conn.close()

    return applied_now


def _target_urls(settings: Settings, *, test: bool, all_: bool) -> list[str]:
    urls: list[str] = []
    if all_ or not test:
        urls.append(settings.DATABASE_URL)
    if all_ or test:
        if not settings.DATABASE_TEST_URL:
            raise SystemExit("DATABASE_TEST_URL is not set.")
        urls.append(settings.DATABASE_TEST_URL)
    return urls


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apply pending SQL migrations.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--test", action="store_true", help="migrate DATABASE_TEST_URL only")
    group.add_argument("--all", action="store_true", help="migrate DATABASE_URL and DATABASE_TEST_URL")
    parser.add_argument("--dir", type=Path, default=DEFAULT_MIGRATIONS_DIR, help="migrations directory")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)

    for url in _target_urls(settings, test=args.test, all_=args.all):
        applied = asyncio.run(migrate(url, args.dir))
        print(f"{len(applied)} migration(s) applied")


if __name__ == "__main__":
    main()
