import json
import os
import threading
from collections import defaultdict

import jsonschema

from log_analytics.models import parse_timestamp

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "log_record.json")


class ValidationError(Exception):
    """Raised when a candidate log record fails validation."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class LogValidator:
    """Validates candidate log records against a JSON schema."""

    def __init__(self, schema_path=None):
        with open(schema_path or DEFAULT_SCHEMA_PATH, "r") as f:
            schema = json.load(f)

        self._validator = jsonschema.Draft202012Validator(schema)
        self._lock = threading.Lock()
        self._stats = {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, candidate):
        """Validate a candidate record dict.

        Returns:
            tuple: (is_valid: bool, errors: list[str])
        """
        error_types = []
        error_messages = []
        for error in self._validator.iter_errors(candidate):
            error_types.append(error.validator)
            error_messages.append(error.message)

        timestamp = candidate.get("timestamp") if isinstance(candidate, dict) else None
        if isinstance(timestamp, str):
            try:
                parse_timestamp(timestamp)
            except ValueError:
                error_types.append("timestamp")
                error_messages.append(f"'{timestamp}' is not a valid ISO 8601 timestamp")

        with self._lock:
            self._stats["total"] += 1
            for error_type in error_types:
                self._stats["error_types"][error_type] += 1
            if error_messages:
                self._stats["invalid"] += 1
            else:
                self._stats["valid"] += 1

        return not error_messages, error_messages

    def check(self, candidate):
        """Like validate() but raises ValidationError instead of returning errors."""
        is_valid, errors = self.validate(candidate)
        if not is_valid:
            raise ValidationError(errors)

    def get_stats(self):
        """Return a copy of the stats dict."""
        with self._lock:
            stats = dict(self._stats)
            stats["error_types"] = dict(stats["error_types"])
        return stats

    def reset_stats(self):
        """Reset all stat counters."""
        with self._lock:
            self._stats = {
                "total": 0,
                "valid": 0,
                "invalid": 0,
                "error_types": defaultdict(int),
            }
