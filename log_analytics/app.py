import atexit
import logging
import os
import sys

from flask import Flask, request, jsonify

from log_analytics.analytics import AnalyticsEngine
from log_analytics.config import Config
from log_analytics.ingestion import IngestionCoordinator
from log_analytics.log_store import LogStore, StoreError
from log_analytics.models import FilterCriteria, parse_timestamp
from log_analytics.notifier import Broadcaster
from log_analytics.query import InvalidQueryError, QueryEngine
from log_analytics.simulator import LogGenerator
from log_analytics.validator import LogValidator, ValidationError

logger = logging.getLogger(__name__)


def _time_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise InvalidQueryError(f"'{name}' is not a valid ISO 8601 timestamp: {value}") from None


def create_app(config=None, store=None, clock=None):
    """Flask application factory."""
    app = Flask(__name__)

    # Initialize components
    if config is None:
        config = Config(os.environ.get("CONFIG_PATH", "config.yaml"))
    if store is None:
        store = LogStore()

    default_page_size = config["query"]["default_page_size"]
    default_window_hours = config["analytics"]["default_window_hours"]

    broadcaster = Broadcaster(queue_size=config["notifications"]["queue_size"])
    query_engine = QueryEngine(store, recent_limit=config["query"]["recent_limit"])
    analytics = AnalyticsEngine(store, clock=clock)
    coordinator = IngestionCoordinator(
        store,
        broadcaster,
        validator=LogValidator(config["schema"]["path"]),
        clock=clock,
        topic=config["notifications"]["topic"],
    )
    generator = LogGenerator(coordinator, interval_seconds=config["generator"]["interval_seconds"])

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "store": store,
        "broadcaster": broadcaster,
        "query": query_engine,
        "analytics": analytics,
        "coordinator": coordinator,
        "generator": generator,
    }

    if config["generator"]["enabled"]:
        generator.start()
        atexit.register(generator.stop)

    # --- Error handlers ---

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"status": "invalid", "errors": e.errors}), 400

    @app.errorhandler(InvalidQueryError)
    def handle_invalid_query(e):
        return jsonify({"status": "invalid", "errors": [str(e)]}), 400

    @app.errorhandler(StoreError)
    def handle_store_error(e):
        logger.error("Store failure: %s", e)
        return jsonify({"status": "error", "errors": [str(e)]}), 500

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "total_logs": store.count_all(),
            "ingestion": coordinator.get_stats(),
        })

    @app.route("/api/logs", methods=["GET"])
    def recent_logs():
        return jsonify([r.to_dict() for r in query_engine.list_recent()])

    @app.route("/api/logs", methods=["POST"])
    def create_log():
        created = coordinator.create(request.get_json(force=True))
        return jsonify(created.to_dict()), 201

    @app.route("/api/logs/paginated")
    def paginated_logs():
        page = request.args.get("page", 0, type=int)
        size = request.args.get("size", default_page_size, type=int)
        return jsonify(query_engine.list_paginated(page, size).to_dict())

    @app.route("/api/logs/level/<level>")
    def logs_by_level(level):
        return jsonify([r.to_dict() for r in query_engine.list_by_level(level)])

    @app.route("/api/logs/search")
    def search_logs():
        query_text = request.args.get("query", "")
        return jsonify([r.to_dict() for r in query_engine.search(query_text)])

    @app.route("/api/logs/stats")
    def log_stats():
        return jsonify(analytics.global_stats().to_dict())

    @app.route("/api/logs/timeseries")
    def time_series():
        hours = request.args.get("hours", default_window_hours, type=int)
        return jsonify([p.to_dict() for p in analytics.time_series(hours)])

    @app.route("/api/logs/filter")
    def filtered_logs():
        criteria = FilterCriteria(
            level=request.args.get("level") or None,
            source=request.args.get("source") or None,
            start_time=_time_arg("startTime"),
            end_time=_time_arg("endTime"),
            query=request.args.get("query") or None,
        )
        page = request.args.get("page", 0, type=int)
        size = request.args.get("size", default_page_size, type=int)
        return jsonify(query_engine.list_with_filters(criteria, page, size).to_dict())

    return app


def main():
    config = Config(os.environ.get("CONFIG_PATH", "config.yaml"))
    logging.basicConfig(
        level=getattr(logging, str(config["logging"]["level"]).upper(), logging.INFO),
        format="%(asctime)s [LOG-ANALYTICS] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    app = create_app(config)
    server = config["server"]
    logger.info("Serving log analytics on %s:%s", server["host"], server["port"])
    app.run(host=server["host"], port=server["port"], debug=server["debug"])


if __name__ == "__main__":
    main()
