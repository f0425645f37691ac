"""Log record model and the value types returned by the query and analytics engines."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum


class LogLevel(str, Enum):
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"

    @classmethod
    def parse(cls, value: "LogLevel | str") -> "LogLevel":
        """Accept a LogLevel or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown log level '{value}', expected one of {[l.name for l in cls]}"
            ) from None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: datetime | str) -> datetime:
    """Parse an ISO 8601 string (or pass a datetime through) as an aware datetime.

    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        ts = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def truncate_to_hour(ts: datetime) -> datetime:
    return ts.replace(minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class LogRecord:
    # timestamp and level may be None only on a candidate that has not been ingested
    timestamp: datetime | None
    level: LogLevel | None
    message: str
    id: int | None = None
    source: str | None = None
    thread: str | None = None
    logger: str | None = None

    def with_id(self, record_id: int) -> "LogRecord":
        return replace(self, id=record_id)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat() if self.timestamp is not None else None
        data["level"] = getattr(self.level, "value", self.level)
        return data


@dataclass(frozen=True)
class FilterCriteria:
    """Optional predicates for a filtered query. None means no constraint."""

    level: LogLevel | None = None
    source: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    query: str | None = None

    @property
    def is_empty_range(self) -> bool:
        return (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        )

    def matches(self, record: LogRecord) -> bool:
        if self.level is not None and record.level != self.level:
            return False
        if self.source is not None and record.source != self.source:
            return False
        if self.start_time is not None and record.timestamp < self.start_time:
            return False
        if self.end_time is not None and record.timestamp > self.end_time:
            return False
        if self.query is not None and self.query.lower() not in record.message.lower():
            return False
        return True


@dataclass
class Page:
    items: list[LogRecord]
    page: int
    page_size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.page_size)

    @property
    def number_of_elements(self) -> int:
        return len(self.items)

    @property
    def is_first(self) -> bool:
        return self.page == 0

    @property
    def is_last(self) -> bool:
        return self.page + 1 >= self.total_pages

    def to_dict(self) -> dict:
        return {
            "content": [r.to_dict() for r in self.items],
            "page": self.page,
            "size": self.page_size,
            "total_elements": self.total_elements,
            "total_pages": self.total_pages,
            "number_of_elements": self.number_of_elements,
            "first": self.is_first,
            "last": self.is_last,
        }


@dataclass
class LogStats:
    total_logs: int = 0
    error_count: int = 0
    warn_count: int = 0
    info_count: int = 0
    debug_count: int = 0
    trace_count: int = 0
    error_rate: float = 0.0

    @classmethod
    def from_counts(cls, total_logs: int, counts: dict[LogLevel, int]) -> "LogStats":
        error_count = counts.get(LogLevel.ERROR, 0)
        return cls(
            total_logs=total_logs,
            error_count=error_count,
            warn_count=counts.get(LogLevel.WARN, 0),
            info_count=counts.get(LogLevel.INFO, 0),
            debug_count=counts.get(LogLevel.DEBUG, 0),
            trace_count=counts.get(LogLevel.TRACE, 0),
            error_rate=error_count / total_logs * 100 if total_logs > 0 else 0.0,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TimeSeriesPoint:
    timestamp: datetime
    error: int = 0
    warn: int = 0
    info: int = 0
    debug: int = 0
    trace: int = 0
    total: int = field(init=False, default=0)

    def __post_init__(self):
        self.total = self.error + self.warn + self.info + self.debug + self.trace

    @classmethod
    def from_counts(cls, timestamp: datetime, counts: dict[LogLevel, int]) -> "TimeSeriesPoint":
        return cls(
            timestamp=timestamp,
            error=counts.get(LogLevel.ERROR, 0),
            warn=counts.get(LogLevel.WARN, 0),
            info=counts.get(LogLevel.INFO, 0),
            debug=counts.get(LogLevel.DEBUG, 0),
            trace=counts.get(LogLevel.TRACE, 0),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data
