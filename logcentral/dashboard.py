from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from .events import Observable
from .models import (
    DASHBOARD_LEVELS,
    ChartPoint,
    ChartSeries,
    FetchResult,
    LogRecord,
    level_color,
    level_plot_offset,
    normalize_level,
)
from .repository_protocol import LogRepository

logger = logging.getLogger(__name__)

AXIS_DATE_FMT = "%Y-%m-%d"


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def day_of(value: datetime) -> datetime:
    return datetime(value.year, value.month, value.day)


def distinct_days(records: Iterable[LogRecord]) -> list[datetime]:
    return sorted({day_of(record.timestamp) for record in records})


def build_level_series(
    records: list[LogRecord],
    levels: Iterable[str] = DASHBOARD_LEVELS,
) -> list[ChartSeries]:
    """Count records per (day, level) and lay them out as one series per level.

    Every series covers every day present in ``records``; a level with no
    records on a day gets a zero point. The per-level offset only moves the
    plotted x position, never the day a record is counted under.
    """
    days = distinct_days(records)
    counts = Counter(
        (day_of(record.timestamp), normalize_level(record.level)) for record in records
    )
    series: list[ChartSeries] = []
    for level in levels:
        key = normalize_level(level)
        offset = level_plot_offset(level)
        points = [
            ChartPoint(date=day, count=counts.get((day, key), 0), x=day + offset)
            for day in days
        ]
        series.append(ChartSeries(name=level, points=points, color=level_color(level)))
    return series


def filter_by_range(
    records: Iterable[LogRecord],
    start: datetime,
    end: datetime,
) -> list[LogRecord]:
    selected = [record for record in records if start <= record.timestamp <= end]
    return sorted(selected, key=lambda record: record.timestamp, reverse=True)


class DashboardAggregator(Observable):
    """Chart state for one product's logs.

    A failing repository never raises out of this class: the state is left
    empty and the failure is kept on ``last_result``.
    """

    def __init__(self, repository: Optional[LogRepository]) -> None:
        if repository is None:
            raise ValueError("repository is required.")
        super().__init__()
        self.repository = repository
        self.selected_log: Optional[LogRecord] = None
        self.series: list[ChartSeries] = []
        self.days: list[datetime] = []
        self.selected_logs: list[LogRecord] = []
        self._records: list[LogRecord] = []
        self._range_start = datetime.min
        self._range_end = datetime.min
        self.last_result = self._load()

    @property
    def records(self) -> list[LogRecord]:
        return list(self._records)

    @property
    def available(self) -> bool:
        return self.last_result.ok

    @property
    def range_start(self) -> datetime:
        return self._range_start

    @range_start.setter
    def range_start(self, value: datetime) -> None:
        self._range_start = as_naive_utc(value)
        self._notify_property("range_start")
        self._apply_range()

    @property
    def range_end(self) -> datetime:
        return self._range_end

    @range_end.setter
    def range_end(self, value: datetime) -> None:
        self._range_end = as_naive_utc(value)
        self._notify_property("range_end")
        self._apply_range()

    def set_range(self, start: datetime, end: datetime) -> None:
        self._range_start = as_naive_utc(start)
        self._range_end = as_naive_utc(end)
        self._notify_property("range_start")
        self._notify_property("range_end")
        self._apply_range()

    @property
    def is_info_visible(self) -> bool:
        return self.is_visible("Info")

    @property
    def is_warning_visible(self) -> bool:
        return self.is_visible("Warning")

    @property
    def is_error_visible(self) -> bool:
        return self.is_visible("Error")

    def find_series(self, level: str | None) -> Optional[ChartSeries]:
        key = normalize_level(level)
        if not key:
            return None
        for series in self.series:
            if normalize_level(series.name) == key:
                return series
        return None

    def is_visible(self, level: str) -> bool:
        series = self.find_series(level)
        return series.is_visible if series else False

    def toggle(self, level: str | None) -> None:
        series = self.find_series(level)
        if series is None:
            return
        series.is_visible = not series.is_visible
        self._notify_property("series")
        self._notify_property(f"is_{normalize_level(series.name)}_visible")

    def x_axis_labels(self) -> list[str]:
        return [day.strftime(AXIS_DATE_FMT) for day in self.days]

    def refresh(self) -> FetchResult:
        hidden = {normalize_level(s.name) for s in self.series if not s.is_visible}
        self.last_result = self._load()
        for series in self.series:
            if normalize_level(series.name) in hidden:
                series.is_visible = False
        self._notify_property("selected_log")
        self._notify_property("series")
        self._notify_property("selected_logs")
        return self.last_result

    def _load(self) -> FetchResult:
        try:
            latest = self.repository.latest()
            records = list(self.repository.all())
        except Exception as exc:
            logger.warning(
                "Log fetch failed for repository=%s; dashboard left empty. %s",
                type(self.repository).__name__,
                exc,
            )
            self.selected_log = None
            self.series = []
            self.days = []
            self.selected_logs = []
            self._records = []
            return FetchResult.failure(exc)

        self.selected_log = latest
        self._records = records
        self.days = distinct_days(records)
        self.series = build_level_series(records)
        self.selected_logs = filter_by_range(records, self._range_start, self._range_end)
        return FetchResult(records=records)

    def _apply_range(self) -> None:
        self.selected_logs = filter_by_range(self._records, self._range_start, self._range_end)
        self._notify_property("selected_logs")
