"""
db/migrate.py
-------------
Applies db/schema.sql to the configured Postgres database.

Usage:
    python -m tripcanvas.db.migrate [--dry-run]

Exit codes:
    0 — schema applied (or dry-run completed)
    1 — connection failed or SQL error

All statements run in one transaction (db.connection.transaction); the schema
uses IF NOT EXISTS throughout, so re-running is harmless.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path

import psycopg2

from tripcanvas import config
from tripcanvas.db.connection import close_pool, transaction

logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).resolve().parent / "schema.sql"


def strip_comments(sql: str) -> str:
    sql = re.sub(r"/\*.*?\*/", "", sql, flags=re.DOTALL)
    return re.sub(r"--[^\n]*", "", sql)


def split_statements(sql: str) -> list[str]:
    return [s.strip() for s in sql.split(";") if s.strip()]


def load_statements(path: Path = SCHEMA_FILE) -> list[str]:
    if not path.exists():
        raise FileNotFoundError(f"SQL file not found: {path}")
    return split_statements(strip_comments(path.read_text(encoding="utf-8")))


def run(dry_run: bool = False) -> int:
    """Apply the schema; returns the number of statements."""
    statements = load_statements()
    logger.info("Schema %s: %d statements → %s @ %s:%s", SCHEMA_FILE.name, len(statements),
                config.POSTGRES_DB, config.POSTGRES_HOST, config.POSTGRES_PORT)

    if dry_run:
        for i, stmt in enumerate(statements, 1):
            logger.info("  [%03d] %s", i, stmt[:80].replace("\n", " "))
        return len(statements)

    with transaction() as conn:
        with conn.cursor() as cur:
            for i, stmt in enumerate(statements, 1):
                try:
                    cur.execute(stmt)
                except psycopg2.Error as exc:
                    logger.error("Statement %d failed: %s", i, exc.pgerror or exc)
                    raise
    logger.info("Applied %d statements.", len(statements))
    return len(statements)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply the tripcanvas Postgres schema.")
    parser.add_argument("--dry-run", action="store_true",
                        help="Log statements without executing them.")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[migrate] %(message)s")
    try:
        run(dry_run=args.dry_run)
    except (OSError, psycopg2.Error) as exc:
        logger.error("ERROR: %s", exc)
        return 1
    finally:
        close_pool()
    return 0


if __name__ == "__main__":
    sys.exit(main())
