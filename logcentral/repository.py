from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from .models import LogRecord


@dataclass
class InMemoryLogStore:
    """Process-local log table, identified by ``key``."""

    key: str
    records: list[LogRecord] = field(default_factory=list)
    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    def add(
        self,
        *,
        timestamp: datetime,
        level: str,
        message: str,
        stack_trace: str | None = None,
        record_id: str | int | None = None,
    ) -> LogRecord:
        record = LogRecord(
            id=record_id if record_id is not None else next(self._ids),
            timestamp=timestamp,
            level=level,
            message=message,
            stack_trace=stack_trace,
        )
        self.records.append(record)
        return record

    def extend(self, records: Iterable[LogRecord]) -> None:
        self.records.extend(records)


@dataclass
class InMemoryLogRepository:
    store: InMemoryLogStore

    def latest(self) -> Optional[LogRecord]:
        if not self.store.records:
            return None
        return max(self.store.records, key=lambda record: record.timestamp)

    def all(self) -> list[LogRecord]:
        return list(self.store.records)


@dataclass
class UnavailableRepository:
    """Stands in for a store whose handle could not be built."""

    error: Exception

    def latest(self) -> Optional[LogRecord]:
        raise self.error

    def all(self) -> list[LogRecord]:
        raise self.error
