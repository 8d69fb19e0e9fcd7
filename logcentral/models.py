from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union

from .events import ALL_PROPERTIES, Observable


class ProviderType(str, Enum):
    IN_MEMORY = "InMemory"
    MONGODB = "MongoDB"
    MYSQL = "MySQL"
    SQLITE = "SQLite"


INFO = "Info"
WARNING = "Warning"
ERROR = "Error"

DASHBOARD_LEVELS = (INFO, WARNING, ERROR)

# Hour offsets keep same-day bars of different levels from overlapping.
LEVEL_PLOT_OFFSET_HOURS = {
    INFO: 0,
    WARNING: -3,
    ERROR: 3,
}

LEVEL_COLORS = {
    INFO: "#87CEEB",
    WARNING: "#FFA500",
    ERROR: "#FF0000",
}
DEFAULT_LEVEL_COLOR = "#808080"


def normalize_level(level: str | None) -> str:
    return (level or "").strip().casefold()


def levels_match(left: str | None, right: str | None) -> bool:
    return normalize_level(left) == normalize_level(right)


def level_color(level: str | None) -> str:
    for name, color in LEVEL_COLORS.items():
        if levels_match(name, level):
            return color
    return DEFAULT_LEVEL_COLOR


def level_plot_offset(level: str | None) -> timedelta:
    for name, hours in LEVEL_PLOT_OFFSET_HOURS.items():
        if levels_match(name, level):
            return timedelta(hours=hours)
    return timedelta(0)


@dataclass(frozen=True)
class LogRecord:
    id: Union[str, int, None]
    timestamp: datetime
    level: str
    message: str
    stack_trace: Optional[str] = None


class ProductInfo(Observable):
    """A registered log source.

    The database name is fixed at construction since it is the product's
    identity inside a catalog. Every change to the connection fields raises
    one PropertyChange: the field name for a single assignment, or
    ``ALL_PROPERTIES`` when ``update`` changes both fields at once.
    """

    def __init__(
        self,
        database_name: str,
        connection_string: str = "",
        provider_type: ProviderType = ProviderType.MONGODB,
    ) -> None:
        super().__init__()
        self._database_name = database_name
        self._connection_string = connection_string or ""
        self._provider_type = ProviderType(provider_type)

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def connection_string(self) -> str:
        return self._connection_string

    @connection_string.setter
    def connection_string(self, value: str | None) -> None:
        self.update(connection_string=value or "")

    @property
    def provider_type(self) -> ProviderType:
        return self._provider_type

    @provider_type.setter
    def provider_type(self, value: ProviderType | str) -> None:
        self.update(provider_type=value)

    def update(
        self,
        *,
        connection_string: str | None = None,
        provider_type: ProviderType | str | None = None,
    ) -> list[str]:
        """Apply the given fields together and notify once. Returns the changed names."""
        changes: dict[str, Any] = {}
        if connection_string is not None:
            changes["connection_string"] = connection_string
        if provider_type is not None:
            changes["provider_type"] = ProviderType(provider_type)

        changed = [name for name, value in changes.items() if getattr(self, f"_{name}") != value]
        for name in changed:
            setattr(self, f"_{name}", changes[name])
        if len(changed) == 1:
            self._notify_property(changed[0])
        elif changed:
            self._notify_property(ALL_PROPERTIES)
        return changed

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if not (self.database_name or "").strip():
            errors.append("database_name is required.")
        return errors

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProductInfo):
            return NotImplemented
        return (
            self.database_name == other.database_name
            and self.connection_string == other.connection_string
            and self.provider_type == other.provider_type
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ProductInfo(database_name={self.database_name!r}, "
            f"provider_type={self.provider_type.value!r})"
        )


@dataclass(frozen=True)
class ChartPoint:
    date: datetime
    count: int
    x: datetime


@dataclass
class ChartSeries:
    name: str
    points: list[ChartPoint] = field(default_factory=list)
    is_visible: bool = True
    color: str = DEFAULT_LEVEL_COLOR


@dataclass(frozen=True)
class LevelSlice:
    level: str
    count: int


@dataclass
class FetchResult:
    records: list[LogRecord] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: Exception) -> "FetchResult":
        return cls(records=[], error=error)
