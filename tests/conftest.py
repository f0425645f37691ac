from datetime import datetime, timezone

import pytest

from log_analytics.analytics import AnalyticsEngine
from log_analytics.app import create_app
from log_analytics.config import Config
from log_analytics.ingestion import IngestionCoordinator
from log_analytics.log_store import LogStore
from log_analytics.notifier import Broadcaster
from log_analytics.query import QueryEngine
from log_analytics.validator import LogValidator

NOW = datetime(2024, 1, 15, 11, 10, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    return LogStore()


@pytest.fixture
def query_engine(store):
    return QueryEngine(store)


@pytest.fixture
def analytics(store, clock):
    return AnalyticsEngine(store, clock=clock)


@pytest.fixture
def broadcaster():
    return Broadcaster(queue_size=10)


@pytest.fixture
def validator():
    return LogValidator()


@pytest.fixture
def coordinator(store, broadcaster, validator, clock):
    return IngestionCoordinator(store, broadcaster, validator=validator, clock=clock)


@pytest.fixture
def sample_candidate():
    return {
        "timestamp": "2024-01-15T10:30:00Z",
        "level": "ERROR",
        "message": "Database connection timeout after 30 seconds",
        "source": "DatabaseService",
        "thread": "http-exec-1",
        "logger": "DatabaseService.class",
    }


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def app(config, store, clock):
    """Create a Flask test app."""
    application = create_app(config, store=store, clock=clock)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
