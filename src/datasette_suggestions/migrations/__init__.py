"""
Schema migrations for the suggestions database.

Each migration is a SQL file named NNNN_description.sql in this directory.
A migration and its schema_migrations row are committed in one transaction,
so a failing file leaves the database at the previous version.
"""

import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

MIGRATIONS_DIR = Path(__file__).parent

MIGRATION_NAME = re.compile(r"^(?P<version>\d+)_(?P<name>\w+)\.sql$")

logger = logging.getLogger("datasette-suggestions")


@dataclass(frozen=True)
class Migration:
    version: int
    path: Path

    @property
    def name(self) -> str:
        return MIGRATION_NAME.match(self.path.name).group("name")

    def script(self) -> str:
        """The migration SQL wrapped with its version record in one transaction."""
        recorded_at = datetime.now(UTC).isoformat()
        return (
            "BEGIN;\n"
            f"{self.path.read_text()}\n;\n"
            "INSERT INTO schema_migrations (version, applied_ts) "
            f"VALUES ({self.version}, '{recorded_at}');\n"
            "COMMIT;\n"
        )


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Migrations found in directory, lowest version first."""
    found = {}
    for path in directory.glob("*.sql"):
        match = MIGRATION_NAME.match(path.name)
        if not match:
            logger.warning(f"Skipping badly named migration file: {path.name}")
            continue
        version = int(match.group("version"))
        if version in found:
            raise ValueError(f"Duplicate migration version {version}: {path.name}")
        found[version] = Migration(version, path)
    return [found[version] for version in sorted(found)]


def applied_versions(conn: sqlite3.Connection) -> set[int]:
    """Versions recorded in schema_migrations. Empty before the first run."""
    exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'"
    ).fetchone()
    if not exists:
        return set()
    return {row[0] for row in conn.execute("SELECT version FROM schema_migrations")}


def run_migrations(
    db_path: Path,
    verbose: bool = True,
    directory: Path = MIGRATIONS_DIR,
) -> list[int]:
    """
    Bring the database up to the newest migration.

    Idempotent, so it runs on every startup. Returns the versions applied by
    this call. A migration that fails is rolled back and its error re-raised;
    versions applied before it stay applied.
    """
    log = logger.info if verbose else logger.debug
    applied: list[int] = []

    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            "version INTEGER PRIMARY KEY, applied_ts TEXT NOT NULL)"
        )
        conn.commit()

        done = applied_versions(conn)
        pending = [m for m in discover_migrations(directory) if m.version not in done]
        if not pending:
            log("Schema is up to date.")

        for migration in pending:
            log(f"Applying migration {migration.version}: {migration.name}")
            try:
                conn.executescript(migration.script())
            except sqlite3.Error:
                if conn.in_transaction:
                    conn.rollback()
                logger.error(f"Migration {migration.version} failed; rolled back")
                raise
            applied.append(migration.version)
    finally:
        conn.close()

    return applied


def get_current_version(db_path: Path) -> int:
    """The highest applied migration version, or 0 for a missing database."""
    if not db_path.exists():
        return 0

    conn = sqlite3.connect(db_path)
    try:
        return max(applied_versions(conn), default=0)
    finally:
        conn.close()
