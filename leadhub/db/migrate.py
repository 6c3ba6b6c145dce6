"""Create the CRM tables the import pipeline depends on."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from leadhub.config import configure_logging, load_settings
from leadhub.db.session import create_engine_from_env
from leadhub.db.tables import metadata

logger = logging.getLogger(__name__)

SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")


def run_migrations(engine: Engine) -> None:
    """Apply schema.sql on PostgreSQL; fall back to the table metadata elsewhere."""
    if engine.dialect.name != "postgresql":
        logger.info("Creating tables from metadata on %s", engine.dialect.name)
        metadata.create_all(engine)
        return
    statements = list(split_statements(SCHEMA_PATH.read_text()))
    logger.info("Applying %s schema statements", len(statements))
    with engine.begin() as conn:
        for stmt in statements:
            conn.execute(text(stmt))


def split_statements(sql: str) -> Iterable[str]:
    buffer: list[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        buffer.append(line)
        if stripped.endswith(";"):
            yield "\n".join(buffer)
            buffer.clear()
    if buffer:
        yield "\n".join(buffer)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create CRM import tables")
    parser.add_argument("--database-url", help="overrides DATABASE_URL")
    args = parser.parse_args(argv)
    settings = load_settings()
    configure_logging(settings)
    engine = create_engine_from_env(args.database_url or settings.database_url)
    try:
        run_migrations(engine)
    except SQLAlchemyError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
