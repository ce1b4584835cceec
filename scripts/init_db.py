#!/usr/bin/env python3
"""Initialize the suggestions database with all migrations."""

import argparse
import logging
import sqlite3
from pathlib import Path

from datasette_suggestions.config import SuggestionsConfig
from datasette_suggestions.migrations import run_migrations

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("datasette-suggestions")


def init_db(db_path: Path) -> list[int]:
    """Create or migrate the database and report its state."""
    logger.info(f"Initializing database: {db_path}")

    applied = run_migrations(db_path, verbose=True)
    if applied:
        logger.info(f"Applied {len(applied)} migration(s).")

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute("SELECT version, applied_ts FROM schema_migrations ORDER BY version")
        for row in cursor:
            logger.info(f"Schema v{row[0]} applied at {row[1]}")

        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        tables = [row[0] for row in cursor if not row[0].startswith("sqlite_")]
        logger.info(f"Tables: {', '.join(tables)}")
    finally:
        conn.close()

    return applied


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the suggestions database")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite database file (default: from --config, else suggestions.db)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("datasette.yaml"),
        help="Datasette config file to read suggestions_db_path from (default: datasette.yaml)",
    )
    args = parser.parse_args()

    db_path = args.db or SuggestionsConfig.from_yaml(args.config).db_path
    init_db(db_path)


if __name__ == "__main__":
    main()
