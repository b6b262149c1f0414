from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv

from campus_attendance.config import load_db_config
from campus_attendance.database.bootstrap import migrate_legacy_store
from campus_attendance.database.connection import Database


def main() -> None:
    load_dotenv(override=False)
    db_config = load_db_config()

    with Database(db_config) as database:
        report = migrate_legacy_store(database)

    print(f"Migrated {db_config.path}")
    print(f"  added columns : {', '.join(report.added_columns) or '-'}")
    print(f"  created tables: {', '.join(report.created_tables) or '-'}")
    print(f"  backfilled check_in_date rows: {report.backfilled_rows}")
    for warning in report.warnings:
        print(f"  WARNING: {warning}")


if __name__ == "__main__":
    main()
