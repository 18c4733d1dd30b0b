"""
Auto-migration system for schema changes.

Runs on startup: creates missing tables and, on PostgreSQL, adds model
columns that an older database does not have yet. Safe to run repeatedly.
"""

import asyncio
import enum
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from database import engine, Base
import models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)


async def get_table_columns(engine: AsyncEngine, table_name: str) -> set:
    """Get all column names for a table from the database."""
    async with engine.connect() as conn:
        if engine.dialect.name == "sqlite":
            result = await conn.execute(text(f"PRAGMA table_info({table_name})"))
            return {row[1] for row in result}
        result = await conn.execute(
            text("SELECT column_name FROM information_schema.columns WHERE table_name = :table_name"),
            {"table_name": table_name}
        )
        return {row[0] for row in result}


def build_default_clause(column) -> str:
    """Literal DEFAULT for scalar column defaults; callables are left to the ORM"""
    if column.default is None or not hasattr(column.default, "arg") or callable(column.default.arg):
        return ""
    value = column.default.arg
    if isinstance(value, bool):
        return f"DEFAULT {str(value).upper()}"
    if isinstance(value, enum.Enum):
        # Enum columns store the member name
        return f"DEFAULT '{value.name}'"
    if isinstance(value, (int, float)):
        return f"DEFAULT {value}"
    if isinstance(value, str):
        return f"DEFAULT '{value}'"
    return ""


async def add_missing_columns(engine: AsyncEngine) -> bool:
    """
    Add columns defined on the models but absent from the database.
    Returns True when anything was added.
    """
    if engine.dialect.name == "sqlite":
        logger.info("Skipping column detection for SQLite; create_all handles new tables.")
        return False

    logger.info("Checking for missing database columns...")
    changes_made = False

    for table_name, table in Base.metadata.tables.items():
        db_columns = await get_table_columns(engine, table_name)
        missing_columns = {col.name for col in table.columns} - db_columns
        if not missing_columns:
            continue

        logger.info(f"Table '{table_name}' is missing columns: {missing_columns}")
        async with engine.begin() as conn:
            for col_name in sorted(missing_columns):
                col = table.columns[col_name]
                col_type = col.type.compile(engine.dialect)
                default_clause = build_default_clause(col)
                # Existing rows get no value, so NOT NULL only works with a default
                nullable = "NOT NULL" if not col.nullable and default_clause else "NULL"

                await conn.execute(text(
                    f"ALTER TABLE {table_name} "
                    f"ADD COLUMN IF NOT EXISTS {col_name} {col_type} {nullable} {default_clause}"
                ))
                logger.info(f"Added column {table_name}.{col_name}")
                changes_made = True

    return changes_made


async def run_migrations():
    """
    Main migration entry point.
    1. Creates missing tables (via create_all)
    2. Adds missing columns to existing tables
    """
    logger.info("Starting database schema migration...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("All tables exist")

    if await add_missing_columns(engine):
        logger.info("Schema migration completed - columns added")
    else:
        logger.info("Schema is up to date - no changes needed")


if __name__ == "__main__":
    # Allow running migrations standalone
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_migrations())
