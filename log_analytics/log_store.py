import itertools
import threading
from collections import Counter
from datetime import datetime
from typing import Protocol, runtime_checkable

from log_analytics.models import (
    FilterCriteria,
    LogLevel,
    LogRecord,
    Page,
    truncate_to_hour,
)


class StoreError(Exception):
    """Raised when the record store cannot complete an operation."""


@runtime_checkable
class RecordStore(Protocol):
    def insert(self, record: LogRecord) -> LogRecord: ...
    def count_all(self) -> int: ...
    def count_by_level(self, level: LogLevel) -> int: ...
    def find_top_n(self, n: int) -> list[LogRecord]: ...
    def find_by_level(self, level: LogLevel) -> list[LogRecord]: ...
    def find_by_substring(self, text: str) -> list[LogRecord]: ...
    def find_page(self, page: int, page_size: int) -> Page: ...
    def find_with_filters(self, criteria: FilterCriteria, page: int, page_size: int) -> Page: ...
    def group_by_hour_and_level(
        self, start_time: datetime, end_time: datetime | None = None
    ) -> list[tuple[datetime, LogLevel, int]]: ...


def _newest_first(record: LogRecord):
    return (record.timestamp, record.id)


class LogStore:
    """Thread-safe in-memory record store.

    Every read returns records newest first; records sharing a timestamp are
    ordered by id, highest (latest inserted) first.
    """

    def __init__(self):
        self._records = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def insert(self, record):
        """Assign the next id to `record`, store it and return the stored copy."""
        if record.id is not None:
            raise StoreError(f"Record already has id {record.id}")
        with self._lock:
            stored = record.with_id(next(self._ids))
            self._records.append(stored)
        return stored

    def count_all(self):
        with self._lock:
            return len(self._records)

    def count_by_level(self, level):
        with self._lock:
            return sum(1 for r in self._records if r.level == level)

    def find_top_n(self, n):
        return self._sorted()[:n]

    def find_by_level(self, level):
        return [r for r in self._sorted() if r.level == level]

    def find_by_substring(self, text):
        needle = text.lower()
        return [r for r in self._sorted() if needle in r.message.lower()]

    def find_page(self, page, page_size):
        return self._paginate(self._sorted(), page, page_size)

    def find_with_filters(self, criteria, page, page_size):
        matched = [r for r in self._sorted() if criteria.matches(r)]
        return self._paginate(matched, page, page_size)

    def group_by_hour_and_level(self, start_time, end_time=None):
        """Count records per (hour bucket, level) with start_time <= timestamp < end_time."""
        with self._lock:
            counts = Counter(
                (truncate_to_hour(r.timestamp), r.level)
                for r in self._records
                if r.timestamp >= start_time and (end_time is None or r.timestamp < end_time)
            )
        return [(hour, level, count) for (hour, level), count in sorted(counts.items())]

    def _sorted(self):
        with self._lock:
            snapshot = list(self._records)
        return sorted(snapshot, key=_newest_first, reverse=True)

    @staticmethod
    def _paginate(records, page, page_size):
        start = page * page_size
        return Page(
            items=records[start:start + page_size],
            page=page,
            page_size=page_size,
            total_elements=len(records),
        )
