"""
Prometheus metrics exposed by Pod Watchdog

The collectors live in the default registry for the lifetime of the process.
"""

from prometheus_client import Counter, Histogram

MONITORING_DURATION_BUCKETS = (0.1, 0.5, 1, 2, 5, 10, 30)

pods_terminated_total = Counter(
    "pods_terminated_total",
    "Total number of pods terminated by the watchdog",
    ["namespace", "dry_run"],
)

pods_examined_total = Counter(
    "pods_examined_total",
    "Total number of pods examined by the watchdog",
)

pods_terminated_by_age_total = Counter(
    "pods_terminated_by_age_total",
    "Total number of pods terminated due to age limits",
    ["namespace"],
)

monitoring_duration_seconds = Histogram(
    "monitoring_duration_seconds",
    "Time spent running monitoring checks",
    buckets=MONITORING_DURATION_BUCKETS,
)
