from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .connection import MongoSpec
from .models import LogRecord
from .sql_repository import parse_db_time


try:
    from pymongo import DESCENDING, MongoClient
except ImportError:  # pragma: no cover
    MongoClient = None  # type: ignore[assignment,misc]
    DESCENDING = -1

LOG_COLLECTION = "Log"


def document_to_record(document: Mapping[str, Any]) -> LogRecord:
    raw_id = document.get("_id")
    return LogRecord(
        id=str(raw_id) if raw_id is not None else None,
        timestamp=parse_db_time(document["Timestamp"]),
        level=document.get("LogLevel") or "",
        message=document.get("Message") or "",
        stack_trace=document.get("StackTrace"),
    )


def open_client(uri: str, server_selection_timeout_ms: int = 5000) -> Any:
    if MongoClient is None:
        raise ImportError(
            "pymongo package is not installed. Install it with `pip install pymongo`."
        )
    return MongoClient(uri, serverSelectionTimeoutMS=server_selection_timeout_ms)


@dataclass
class MongoLogRepository:
    """Reads the ``Log`` collection of one database.

    A client passed in is shared and left open; one opened here is owned and
    released by ``close``.
    """

    spec: MongoSpec
    server_selection_timeout_ms: int = 5000
    client: Any | None = None
    owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        self.client = open_client(self.spec.uri, self.server_selection_timeout_ms)
        self.owns_client = True

    @property
    def collection(self) -> Any:
        return self.client[self.spec.database_name][LOG_COLLECTION]

    def latest(self) -> Optional[LogRecord]:
        cursor = self.collection.find().sort("Timestamp", DESCENDING).limit(1)
        for document in cursor:
            return document_to_record(document)
        return None

    def all(self) -> list[LogRecord]:
        return [document_to_record(document) for document in self.collection.find()]

    def close(self) -> None:
        if self.owns_client and self.client is not None:
            self.client.close()
            self.client = None
