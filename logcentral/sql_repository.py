from __future__ import annotations

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional
from urllib.parse import quote

from .connection import MySQLSpec, SQLiteSpec
from .models import LogRecord


try:
    import pymysql
    from pymysql.cursors import DictCursor
except ImportError:  # pragma: no cover
    pymysql = None  # type: ignore[assignment]
    DictCursor = None  # type: ignore[assignment,misc]


DB_TIME_FMT = "%Y-%m-%d %H:%M:%S"

LOG_COLUMNS = "Id, Timestamp, LogLevel, Message, StackTrace"
LATEST_LOG_SQL = f"SELECT {LOG_COLUMNS} FROM Log ORDER BY Timestamp DESC LIMIT 1;"
ALL_LOGS_SQL = f"SELECT {LOG_COLUMNS} FROM Log;"

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS Log (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    Timestamp TEXT NOT NULL,
    LogLevel TEXT NOT NULL,
    Message TEXT NOT NULL,
    StackTrace TEXT
);

CREATE INDEX IF NOT EXISTS idx_log_timestamp ON Log(Timestamp);
"""


def to_db_time(value: datetime) -> str:
    return value.strftime(DB_TIME_FMT)


def parse_db_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            parsed = datetime.strptime(raw, DB_TIME_FMT)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def row_to_record(row: Mapping[str, Any]) -> LogRecord:
    return LogRecord(
        id=row["Id"],
        timestamp=parse_db_time(row["Timestamp"]),
        level=row["LogLevel"] or "",
        message=row["Message"] or "",
        stack_trace=row["StackTrace"],
    )


@dataclass
class SQLiteLogRepository:
    path: str

    @classmethod
    def from_spec(cls, spec: SQLiteSpec) -> "SQLiteLogRepository":
        return cls(path=spec.path)

    def connect(self, *, read_only: bool = True) -> sqlite3.Connection:
        if read_only:
            uri = f"file:{quote(Path(self.path).absolute().as_posix())}?mode=ro"
            conn = sqlite3.connect(uri, uri=True, timeout=30)
        else:
            conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        with closing(self.connect(read_only=False)) as conn:
            conn.executescript(SQLITE_SCHEMA)
            conn.commit()

    def add_log(
        self,
        *,
        timestamp: datetime,
        level: str,
        message: str,
        stack_trace: str | None = None,
    ) -> int:
        with closing(self.connect(read_only=False)) as conn:
            cur = conn.execute(
                """
                INSERT INTO Log (Timestamp, LogLevel, Message, StackTrace)
                VALUES (?, ?, ?, ?);
                """,
                (to_db_time(timestamp), level, message, stack_trace),
            )
            conn.commit()
            return int(cur.lastrowid)

    def latest(self) -> Optional[LogRecord]:
        with closing(self.connect()) as conn:
            row = conn.execute(LATEST_LOG_SQL).fetchone()
            return row_to_record(row) if row else None

    def all(self) -> list[LogRecord]:
        with closing(self.connect()) as conn:
            rows = conn.execute(ALL_LOGS_SQL).fetchall()
            return [row_to_record(row) for row in rows]


@dataclass
class MySQLLogRepository:
    spec: MySQLSpec
    connect_timeout_seconds: int = 10
    connection_factory: Callable[[], Any] | None = None

    def __post_init__(self) -> None:
        if self.connection_factory is not None:
            return
        if pymysql is None:
            raise ImportError(
                "PyMySQL package is not installed. Install it with `pip install PyMySQL`."
            )
        self.connection_factory = self._open_connection

    def _open_connection(self) -> Any:
        return pymysql.connect(
            host=self.spec.host,
            port=self.spec.port,
            user=self.spec.user,
            password=self.spec.password,
            database=self.spec.database,
            connect_timeout=self.connect_timeout_seconds,
            cursorclass=DictCursor,
        )

    def _fetch(self, sql: str) -> list[Mapping[str, Any]]:
        with closing(self.connection_factory()) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql)
                return list(cursor.fetchall())
            finally:
                cursor.close()

    def latest(self) -> Optional[LogRecord]:
        rows = self._fetch(LATEST_LOG_SQL)
        return row_to_record(rows[0]) if rows else None

    def all(self) -> list[LogRecord]:
        return [row_to_record(row) for row in self._fetch(ALL_LOGS_SQL)]
