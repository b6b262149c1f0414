from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from .connection import Database
from .sqlite_base import db_transaction

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().with_name("schema.sql")
SEED_PATH = Path(__file__).resolve().with_name("seed.sql")

CORE_TABLES = ("users", "students", "courses", "attendance_records")


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False

    for ch in _strip_comments(sql):
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_sql(conn: Connection, sql: str) -> None:
    for stmt in _iter_sql_statements(sql):
        conn.exec_driver_sql(stmt)


def apply_schema(database: Database, *, schema_path: Optional[str | Path] = None) -> None:
    sql = Path(schema_path or SCHEMA_PATH).read_text(encoding="utf-8")
    with db_transaction(database, context="apply schema") as conn:
        _exec_sql(conn, sql)
    logger.info("Schema ready at %s", database.path)


def apply_seed_sql(database: Database, *, seed_path: Optional[str | Path] = None) -> None:
    sql = Path(seed_path or SEED_PATH).read_text(encoding="utf-8")
    with db_transaction(database, context="apply seed") as conn:
        _exec_sql(conn, sql)
    logger.info("Seed data applied to %s", database.path)


def list_tables(database: Database) -> list[str]:
    with db_transaction(database, context="list tables") as conn:
        rows = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name")
        ).all()
        return [r[0] for r in rows]


def table_row_counts(database: Database, tables: Iterable[str] = CORE_TABLES) -> dict[str, Optional[int]]:
    """Row count per table; None when the table does not exist."""
    present = set(list_tables(database))
    counts: dict[str, Optional[int]] = {}
    with db_transaction(database, context="count rows") as conn:
        for table in tables:
            if table not in present:
                counts[table] = None
                continue
            counts[table] = int(conn.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar_one())
    return counts


def _columns(conn: Connection, table: str) -> set[str]:
    return {row[1] for row in conn.exec_driver_sql(f'PRAGMA table_info("{table}")').all()}


@dataclass
class MigrationReport:
    added_columns: list[str] = field(default_factory=list)
    created_tables: list[str] = field(default_factory=list)
    backfilled_rows: int = 0
    warnings: list[str] = field(default_factory=list)


def migrate_legacy_store(database: Database, *, schema_path: Optional[str | Path] = None) -> MigrationReport:
    """Bring a pre-existing user store up to the binding/attendance schema.

    Adds the binding columns to ``users``, the local-day column to legacy
    ``attendance_records``, then applies the (idempotent) schema which creates
    missing tables and the unique indexes.
    """
    report = MigrationReport()
    before = set(list_tables(database))

    with db_transaction(database, context="migrate legacy columns") as conn:
        if "users" in before:
            user_cols = _columns(conn, "users")
            if "student_id" not in user_cols:
                conn.exec_driver_sql("ALTER TABLE users ADD COLUMN student_id TEXT")
                report.added_columns.append("users.student_id")
            if "binding_status" not in user_cols:
                conn.exec_driver_sql("ALTER TABLE users ADD COLUMN binding_status TEXT DEFAULT 'unbound'")
                report.added_columns.append("users.binding_status")
            if "external_id" not in user_cols and "google_id" in user_cols:
                conn.exec_driver_sql("ALTER TABLE users RENAME COLUMN google_id TO external_id")
                report.added_columns.append("users.external_id (renamed from google_id)")

        if "attendance_records" in before:
            if "check_in_date" not in _columns(conn, "attendance_records"):
                conn.exec_driver_sql("ALTER TABLE attendance_records ADD COLUMN check_in_date TEXT")
                report.added_columns.append("attendance_records.check_in_date")
            result = conn.exec_driver_sql(
                "UPDATE attendance_records SET check_in_date = date(timestamp, 'localtime') "
                "WHERE check_in_date IS NULL"
            )
            report.backfilled_rows = int(result.rowcount or 0)

    sql = Path(schema_path or SCHEMA_PATH).read_text(encoding="utf-8")
    with db_transaction(database, context="migrate schema") as conn:
        for stmt in _iter_sql_statements(sql):
            try:
                with conn.begin_nested():
                    conn.exec_driver_sql(stmt)
            except IntegrityError as e:
                # Legacy data that already violates a unique index keeps the
                # old behavior until an administrator cleans it up.
                report.warnings.append(f"{stmt.splitlines()[0].strip()} -> {e.orig}")
                logger.warning("Migration statement skipped: %s", e.orig)

    report.created_tables = sorted(set(list_tables(database)) - before)
    return report
