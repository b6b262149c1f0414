from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    path: str
    echo: bool = False
    busy_timeout_ms: int = 10_000


class Database:
    """Explicitly owned storage handle.

    Built by the app factory (or a script), passed into every repository, opened
    on start and closed on shutdown. Every transaction starts with
    ``BEGIN IMMEDIATE`` so check-then-write sequences are serialized across
    connections.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._engine: Optional[Engine] = None

    @property
    def path(self) -> str:
        return self._config.path

    @property
    def is_memory(self) -> bool:
        return self._config.path in {":memory:", ""}

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self

        if not self.is_memory:
            Path(self._config.path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

        url = "sqlite://" if self.is_memory else f"sqlite:///{os.path.abspath(self._config.path)}"
        engine = create_engine(
            url,
            echo=self._config.echo,
            connect_args={"check_same_thread": False, "timeout": self._config.busy_timeout_ms / 1000},
        )
        self._install_sqlite_hooks(engine)
        self._engine = engine
        logger.info("Opened database %s", self._config.path)
        return self

    def _install_sqlite_hooks(self, engine: Engine) -> None:
        use_wal = not self.is_memory
        busy_timeout_ms = int(self._config.busy_timeout_ms)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy's "begin" event own transaction boundaries.
            dbapi_connection.isolation_level = None
            cur = dbapi_connection.cursor()
            try:
                cur.execute("PRAGMA foreign_keys = ON")
                cur.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
                if use_wal:
                    cur.execute("PRAGMA journal_mode = WAL")
            finally:
                cur.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.engine.begin() as conn:
            yield conn

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Closed database %s", self._config.path)

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
