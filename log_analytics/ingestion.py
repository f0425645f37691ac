"""Validates incoming records, stores them and announces them to subscribers."""

import logging
import threading

from log_analytics.models import LogLevel, LogRecord, parse_timestamp, utc_now
from log_analytics.notifier import DEFAULT_TOPIC
from log_analytics.validator import LogValidator, ValidationError

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    def __init__(self, store, sink, validator=None, clock=None, topic=DEFAULT_TOPIC):
        self._store = store
        self._sink = sink
        self._validator = validator or LogValidator()
        self._clock = clock or utc_now
        self._topic = topic
        self._lock = threading.Lock()
        self._stats = {"created": 0, "rejected": 0, "notification_failures": 0}

    def create(self, candidate):
        """Validate, persist, then publish a record. Returns the stored record.

        Raises ValidationError for a bad candidate (nothing is stored) and lets
        StoreError from the store propagate. Publish failures are logged only.
        """
        if isinstance(candidate, LogRecord):
            candidate = candidate.to_dict()
        if isinstance(candidate, dict) and isinstance(candidate.get("level"), str):
            candidate = {**candidate, "level": candidate["level"].strip().upper()}

        try:
            self._validator.check(candidate)
        except ValidationError as e:
            self._bump("rejected")
            logger.info("Rejected log record: %s", e)
            raise

        timestamp = candidate.get("timestamp")
        record = LogRecord(
            timestamp=parse_timestamp(timestamp if timestamp is not None else self._clock()),
            level=LogLevel.parse(candidate["level"]),
            message=candidate["message"],
            source=candidate.get("source"),
            thread=candidate.get("thread"),
            logger=candidate.get("logger"),
        )

        stored = self._store.insert(record)
        self._bump("created")
        logger.debug("Stored log record %s [%s]", stored.id, stored.level.value)

        try:
            self._sink.publish(self._topic, stored)
        except Exception:
            self._bump("notification_failures")
            logger.exception("Failed to publish log record %s to %s", stored.id, self._topic)

        return stored

    def get_stats(self):
        with self._lock:
            return dict(self._stats)

    def _bump(self, key):
        with self._lock:
            self._stats[key] += 1
