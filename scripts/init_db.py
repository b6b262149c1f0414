from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv

from campus_attendance.config import load_db_config
from campus_attendance.database.bootstrap import apply_schema, list_tables
from campus_attendance.database.connection import Database


def main() -> None:
    load_dotenv(override=False)
    db_config = load_db_config()

    with Database(db_config) as database:
        apply_schema(database)
        tables = list_tables(database)

    print(f"OK: Applied schema.sql -> {db_config.path} (tables={len(tables)})")


if __name__ == "__main__":
    main()
