from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv

from campus_attendance.config import load_db_config
from campus_attendance.diagnostics import format_report, run_diagnostics


def main() -> None:
    load_dotenv(override=False)
    print(format_report(run_diagnostics(load_db_config())))


if __name__ == "__main__":
    main()
