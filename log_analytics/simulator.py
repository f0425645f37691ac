import logging
import random

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

LEVELS = ["ERROR", "WARN", "INFO", "DEBUG", "TRACE"]
LEVEL_WEIGHTS = [0.10, 0.15, 0.45, 0.20, 0.10]

MESSAGES = {
    "ERROR": [
        "Database connection timeout after 30 seconds",
        "Failed to process payment transaction",
        "Authentication failed for user",
        "Network connection refused",
        "SQL constraint violation detected",
    ],
    "WARN": [
        "High memory usage detected: 85% of heap space used",
        "API rate limit approaching: 950/1000 requests",
        "Slow database query detected (>2s execution time)",
        "Connection pool size approaching maximum",
    ],
    "INFO": [
        "User authentication successful",
        "System backup completed successfully",
        "Cache refreshed successfully",
        "Health check passed for all services",
    ],
    "DEBUG": [
        "Method entry: processUserData()",
        "Validation completed for input parameters",
        "Cache lookup performed for session key",
    ],
}

SOURCES = [
    "UserService", "PaymentService", "AuthService", "DatabaseService",
    "CacheService", "NotificationService", "ReportService", "ApiGateway",
]
THREADS = [
    "http-exec-1", "http-exec-2", "scheduler-thread-1",
    "async-task-executor-1", "background-worker-1", "main",
]


def generate_record(level=None, source=None):
    """Build a random candidate record. The timestamp is left for ingestion to fill in."""
    if level is None:
        level = random.choices(LEVELS, weights=LEVEL_WEIGHTS, k=1)[0]
    if source is None:
        source = random.choice(SOURCES)

    if level == "TRACE":
        message = "Trace: " + random.choice(MESSAGES["DEBUG"])
    else:
        message = random.choice(MESSAGES[level])

    return {
        "level": level,
        "message": message,
        "source": source,
        "thread": random.choice(THREADS),
        "logger": f"{source}.class",
    }


class LogGenerator:
    """Feeds synthetic records into the ingestion coordinator on a fixed interval."""

    def __init__(self, coordinator, interval_seconds=8):
        self._coordinator = coordinator
        self._interval_seconds = interval_seconds
        self._scheduler = None

    def emit(self):
        return self._coordinator.create(generate_record())

    def start(self):
        if self._scheduler is not None:
            return
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(self.emit, "interval", seconds=self._interval_seconds)
        self._scheduler.start()
        logger.info("Log generator started, one record every %ss", self._interval_seconds)

    def stop(self):
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Log generator stopped")

    @property
    def running(self):
        return self._scheduler is not None
