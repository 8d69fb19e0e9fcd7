from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


ProviderName = Literal["InMemory", "MongoDB", "MySQL", "SQLite"]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ProductOut(BaseModel):
    database_name: str
    connection_string: str
    provider_type: ProviderName


class ProductListResponse(BaseModel):
    items: list[ProductOut]


class ProductCreateRequest(BaseModel):
    database_name: str = Field(min_length=1, max_length=200)
    provider_type: str = Field(default="MongoDB", min_length=1, max_length=40)
    connection_string: str | None = Field(default=None, max_length=2000)


class ProductUpdateRequest(BaseModel):
    provider_type: str | None = Field(default=None, min_length=1, max_length=40)
    connection_string: str | None = Field(default=None, max_length=2000)


class LogRecordOut(BaseModel):
    id: str | int | None = None
    timestamp: datetime
    level: str
    message: str
    stack_trace: str | None = None


class LatestLogResponse(BaseModel):
    database_name: str
    log: LogRecordOut | None = None


class ChartPointOut(BaseModel):
    date: datetime
    x: datetime
    count: int


class ChartSeriesOut(BaseModel):
    name: str
    color: str
    is_visible: bool
    points: list[ChartPointOut]


class DashboardResponse(BaseModel):
    database_name: str
    available: bool
    error: str | None = None
    selected_log: LogRecordOut | None = None
    series: list[ChartSeriesOut]
    visibility: dict[str, bool]
    x_axis_labels: list[str]
    range_start: datetime
    range_end: datetime
    selected_logs: list[LogRecordOut]


class LevelSliceOut(BaseModel):
    level: str
    count: int
    share: float = Field(ge=0.0, le=1.0)


class SummaryResponse(BaseModel):
    total: int
    slices: list[LevelSliceOut]
    failures: dict[str, str]


class ProviderOut(BaseModel):
    provider_type: ProviderName
    default_connection_string: str


class ProviderListResponse(BaseModel):
    items: list[ProviderOut]
