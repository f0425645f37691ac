from collections import defaultdict
from datetime import timedelta

from log_analytics.models import LogLevel, LogStats, TimeSeriesPoint, parse_timestamp, utc_now


class AnalyticsEngine:
    """Severity totals and hourly severity histograms computed from the record store."""

    def __init__(self, store, clock=None):
        self._store = store
        self._clock = clock or utc_now

    def global_stats(self):
        """Total count, one count per level and the error rate as a percentage."""
        total_logs = self._store.count_all()
        counts = {level: self._store.count_by_level(level) for level in LogLevel}
        return LogStats.from_counts(total_logs, counts)

    def time_series(self, window_hours=24):
        """Hourly buckets over [now - window_hours, now), oldest first.

        Only hours holding at least one record produce a bucket.
        """
        if window_hours <= 0:
            return []

        now = parse_timestamp(self._clock())
        start_time = now - timedelta(hours=window_hours)
        rows = self._store.group_by_hour_and_level(start_time, now)

        buckets = defaultdict(lambda: defaultdict(int))
        for hour, level, count in rows:
            buckets[hour][LogLevel.parse(level)] += count

        return [
            TimeSeriesPoint.from_counts(hour, buckets[hour])
            for hour in sorted(buckets)
        ]
