import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from log_analytics.ingestion import IngestionCoordinator
from log_analytics.log_store import StoreError
from log_analytics.models import LogLevel, LogRecord
from log_analytics.notifier import NotificationError
from log_analytics.query import QueryEngine
from log_analytics.validator import ValidationError

NOW = datetime(2024, 1, 15, 11, 10, tzinfo=timezone.utc)


class TestCreate:
    def test_returns_stored_record(self, coordinator, sample_candidate):
        record = coordinator.create(sample_candidate)
        assert record.id == 1
        assert record.level == LogLevel.ERROR
        assert record.timestamp == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert record.source == "DatabaseService"
        assert record.logger == "DatabaseService.class"

    def test_missing_timestamp_defaults_to_now(self, coordinator, store):
        record = coordinator.create({"level": "INFO", "message": "hello"})
        assert record.timestamp == NOW
        assert store.count_all() == 1

    def test_null_timestamp_defaults_to_now(self, coordinator):
        record = coordinator.create({"level": "INFO", "message": "hello", "timestamp": None})
        assert record.timestamp == NOW

    def test_accepts_log_record(self, coordinator):
        candidate = LogRecord(timestamp=NOW, level=LogLevel.WARN, message="Disk space usage above 80%")
        record = coordinator.create(candidate)
        assert record.id is not None
        assert record.message == candidate.message

    def test_created_record_listed_once_by_level(self, coordinator, store):
        coordinator.create({"level": "DEBUG", "message": "other"})
        created = coordinator.create({"level": "WARN", "message": "Cache miss rate above threshold"})
        coordinator.create({"level": "WARN", "message": "Deprecated API endpoint accessed"})
        listed = QueryEngine(store).list_by_level(LogLevel.WARN)
        assert [r.id for r in listed].count(created.id) == 1

    def test_empty_message_rejected_and_not_stored(self, coordinator, store, broadcaster):
        sub = broadcaster.subscribe()
        with pytest.raises(ValidationError):
            coordinator.create({"level": "ERROR", "message": ""})
        assert store.count_all() == 0
        assert sub.drain() == []

    def test_missing_level_rejected(self, coordinator, store):
        with pytest.raises(ValidationError) as exc_info:
            coordinator.create({"message": "no level"})
        assert any("level" in e for e in exc_info.value.errors)
        assert store.count_all() == 0

    def test_log_record_without_timestamp_defaults_to_now(self, coordinator, store):
        record = coordinator.create(LogRecord(timestamp=None, level=LogLevel.INFO, message="no timestamp"))
        assert record.timestamp == NOW
        assert store.count_all() == 1

    def test_log_record_without_level_rejected(self, coordinator, store):
        with pytest.raises(ValidationError):
            coordinator.create(LogRecord(timestamp=NOW, level=None, message="no level"))
        assert store.count_all() == 0

    def test_level_name_is_case_insensitive(self, coordinator):
        record = coordinator.create({"level": "info", "message": "hello"})
        assert record.level == LogLevel.INFO

    def test_naive_clock_gives_utc_timestamp(self, store, validator):
        coordinator = IngestionCoordinator(
            store, MagicMock(), validator=validator, clock=lambda: datetime(2024, 1, 15, 11, 10),
        )
        record = coordinator.create({"level": "INFO", "message": "hello"})
        assert record.timestamp == NOW
        assert record.timestamp.tzinfo == timezone.utc

    def test_store_error_propagates(self, validator):
        store = MagicMock()
        store.insert.side_effect = StoreError("disk unavailable")
        sink = MagicMock()
        coordinator = IngestionCoordinator(store, sink, validator=validator)
        with pytest.raises(StoreError):
            coordinator.create({"level": "INFO", "message": "hello"})
        sink.publish.assert_not_called()


class TestNotification:
    def test_publishes_stored_record(self, coordinator, broadcaster):
        sub = broadcaster.subscribe("/topic/logs")
        record = coordinator.create({"level": "INFO", "message": "hello"})
        published = sub.get(timeout=1)
        assert published == record
        assert published.id == record.id

    def test_custom_topic(self, store, validator):
        sink = MagicMock()
        coordinator = IngestionCoordinator(store, sink, validator=validator, topic="/topic/audit")
        record = coordinator.create({"level": "INFO", "message": "hello"})
        sink.publish.assert_called_once_with("/topic/audit", record)

    def test_sink_failure_does_not_fail_create(self, store, validator, caplog):
        sink = MagicMock()
        sink.publish.side_effect = NotificationError("channel down")
        coordinator = IngestionCoordinator(store, sink, validator=validator)

        with caplog.at_level(logging.ERROR, logger="log_analytics.ingestion"):
            record = coordinator.create({"level": "ERROR", "message": "hello"})

        assert record.id == 1
        assert store.count_all() == 1
        assert "Failed to publish" in caplog.text
        assert coordinator.get_stats()["notification_failures"] == 1

    def test_sink_not_retried(self, store, validator):
        sink = MagicMock()
        sink.publish.side_effect = RuntimeError("boom")
        coordinator = IngestionCoordinator(store, sink, validator=validator)
        coordinator.create({"level": "ERROR", "message": "hello"})
        assert sink.publish.call_count == 1


class TestStats:
    def test_counters(self, coordinator):
        coordinator.create({"level": "INFO", "message": "ok"})
        with pytest.raises(ValidationError):
            coordinator.create({"level": "INFO"})
        assert coordinator.get_stats() == {
            "created": 1,
            "rejected": 1,
            "notification_failures": 0,
        }
