"""Environment and database health report for operators.

Purely informational: collecting the report never raises and never blocks
application startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import REQUIRED_SETTINGS
from .core.exceptions import StorageFailure
from .database.bootstrap import CORE_TABLES, table_row_counts
from .database.connection import Database, DBConfig

CHECKED_ENV_VARS = ("APP_ENV", "DATABASE_PATH", *REQUIRED_SETTINGS)


@dataclass
class DiagnosticReport:
    env: Dict[str, bool]
    database_path: str
    database_exists: bool
    tables: Dict[str, Optional[int]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return (
            self.database_exists
            and not self.errors
            and all(self.env.get(k) for k in REQUIRED_SETTINGS)
            and all(v is not None for v in self.tables.values())
        )


def run_diagnostics(db_config: DBConfig) -> DiagnosticReport:
    env = {name: bool((os.getenv(name) or "").strip()) for name in CHECKED_ENV_VARS}
    path = Path(db_config.path).expanduser()
    report = DiagnosticReport(env=env, database_path=str(path.resolve()), database_exists=path.is_file())

    if not report.database_exists:
        report.errors.append("database file not found; run scripts/init_db.py")
        return report

    database = Database(db_config)
    try:
        with database:
            report.tables = table_row_counts(database, CORE_TABLES)
    except (StorageFailure, SQLAlchemyError, OSError) as e:
        report.errors.append(f"cannot read database: {e}")
    return report


def format_report(report: DiagnosticReport) -> str:
    lines = ["Environment:"]
    for name, present in report.env.items():
        lines.append(f"  {name:<22} {'set' if present else 'MISSING'}")

    lines.append("Database:")
    lines.append(f"  path    {report.database_path}")
    lines.append(f"  exists  {'yes' if report.database_exists else 'no'}")
    for table, count in report.tables.items():
        lines.append(f"  {table:<22} {'missing' if count is None else f'{count} rows'}")

    for err in report.errors:
        lines.append(f"ERROR: {err}")
    lines.append("Status: " + ("OK" if report.healthy else "ATTENTION NEEDED"))
    return "\n".join(lines)
