"""Idempotent, additive SQLite migrations.

``Base.metadata.create_all`` creates missing tables but never touches existing
ones, so columns added after a database was first created are patched in here.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# table -> {column: SQL type/default}
ADDED_COLUMNS: dict[str, dict[str, str]] = {
    "inventory_items": {
        "unit": "TEXT DEFAULT 'each' NOT NULL",
        "supplier": "TEXT",
        "category": "TEXT",
        "updated_at": "TEXT",
    },
    "inventory_transactions": {
        "notes": "TEXT",
        "batch_id": "TEXT",
    },
    "tools": {
        "sku": "TEXT",
        "type": "TEXT",
    },
    "tool_movements": {
        "project_id": "INTEGER",
        "notes": "TEXT",
    },
    "reconciliation_items": {
        "last_transaction_id": "INTEGER",
    },
    "reconciliations": {
        "notes": "TEXT",
        "updated_at": "TEXT",
    },
}

INDEXES: list[tuple[str, str, tuple[str, ...]]] = [
    ("inventory_transactions", "ix_inventory_transactions_batch_id", ("batch_id",)),
    ("inventory_items", "ix_inventory_items_category", ("category",)),
    ("tool_movements", "ix_tool_movements_project_id", ("project_id",)),
]


def _column_names(engine: Engine, table: str) -> set[str]:
    with engine.connect() as conn:
        return {record["name"] for record in conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str]) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(cols)})"))


def run_migrations(engine: Engine) -> list[str]:
    """Bring an existing SQLite schema up to date. Returns the columns added."""

    if engine.dialect.name != "sqlite":
        return []

    added: list[str] = []
    for table, wanted in ADDED_COLUMNS.items():
        existing = _column_names(engine, table)
        if not existing:
            # Table absent; create_all builds it fresh.
            continue
        for name, dtype in wanted.items():
            if name not in existing:
                _add_column_sqlite(engine, table, f"{name} {dtype}")
                added.append(f"{table}.{name}")

    if "updated_at" in _column_names(engine, "inventory_items"):
        with engine.begin() as conn:
            conn.execute(text("UPDATE inventory_items SET updated_at = created_at WHERE updated_at IS NULL"))

    for table, name, cols in INDEXES:
        if _column_names(engine, table):
            _create_index_if_not_exists(engine, table, name, cols)

    if added:
        logger.info("db.migrated", extra={"extra_data": {"added_columns": added}})
    return added
