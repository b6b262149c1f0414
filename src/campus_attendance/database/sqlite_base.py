from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.engine import Connection, Result
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.exceptions import StorageFailure
from .connection import Database

logger = logging.getLogger(__name__)


@contextmanager
def db_transaction(database: Database, *, context: str = "storage operation") -> Iterator[Connection]:
    """One transaction; driver errors come out as StorageFailure.

    Repositories that expect an IntegrityError (unique index races) catch it
    inside the block; anything else escaping here is logged and wrapped.
    """
    try:
        with database.transaction() as conn:
            yield conn
    except SQLAlchemyError as e:
        logger.exception("Storage failure during %s", context)
        raise StorageFailure(f"{context} failed") from e


def fetchone(result: Result) -> Optional[Dict[str, Any]]:
    row = result.mappings().first()
    return dict(row) if row else None


def fetchall(result: Result) -> List[Dict[str, Any]]:
    return [dict(r) for r in result.mappings().all()]


def is_unique_violation(error: IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(error.orig)
