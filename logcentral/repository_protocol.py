from __future__ import annotations

from typing import Optional, Protocol

from .models import LogRecord


class LogRepository(Protocol):
    def latest(self) -> Optional[LogRecord]:
        ...

    def all(self) -> list[LogRecord]:
        ...
