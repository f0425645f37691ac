"""Read-side queries over the record store: recent, paginated, by level, search, filtered."""

import logging
from dataclasses import replace

from log_analytics.models import FilterCriteria, LogLevel, Page, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 100


class InvalidQueryError(ValueError):
    """Raised for out-of-range pagination or limit arguments and unknown levels."""


def _parse_level(level):
    try:
        return LogLevel.parse(level)
    except ValueError as e:
        raise InvalidQueryError(str(e)) from None


class QueryEngine:
    def __init__(self, store, recent_limit=DEFAULT_RECENT_LIMIT):
        self._store = store
        self._recent_limit = recent_limit

    def list_recent(self, limit=None):
        """Return the `limit` most recent records, newest first."""
        if limit is None:
            limit = self._recent_limit
        if limit <= 0:
            raise InvalidQueryError(f"limit must be positive, got {limit}")
        return self._store.find_top_n(limit)

    def list_paginated(self, page, page_size):
        """Return one zero-based page of all records, newest first.

        A page past the last one comes back empty.
        """
        self._check_page(page, page_size)
        return self._store.find_page(page, page_size)

    def list_by_level(self, level):
        return self._store.find_by_level(_parse_level(level))

    def search(self, query_text):
        """Case-insensitive substring match on the message. Empty text matches all."""
        return self._store.find_by_substring(query_text or "")

    def list_with_filters(self, criteria=None, page=0, page_size=50):
        """AND together every predicate set on `criteria` and return one page.

        An inverted time range (start after end) gives an empty page.
        """
        self._check_page(page, page_size)
        criteria = self._normalize(criteria or FilterCriteria())

        if criteria.is_empty_range:
            logger.debug("Inverted time range %s > %s, returning empty page",
                         criteria.start_time, criteria.end_time)
            return Page(items=[], page=page, page_size=page_size, total_elements=0)

        return self._store.find_with_filters(criteria, page, page_size)

    @staticmethod
    def _normalize(criteria):
        """Parse a level name and make naive bounds UTC-aware like stored timestamps."""
        try:
            return replace(
                criteria,
                level=_parse_level(criteria.level) if criteria.level is not None else None,
                start_time=parse_timestamp(criteria.start_time) if criteria.start_time is not None else None,
                end_time=parse_timestamp(criteria.end_time) if criteria.end_time is not None else None,
            )
        except ValueError as e:
            raise InvalidQueryError(str(e)) from None

    @staticmethod
    def _check_page(page, page_size):
        if page_size <= 0:
            raise InvalidQueryError(f"page_size must be positive, got {page_size}")
        if page < 0:
            raise InvalidQueryError(f"page must not be negative, got {page}")
