"""Prometheus metrics for resolution and persistence."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Resolution outcomes
resolutions_total = Counter(
    "animap_resolutions_total",
    "Total number of resolution attempts",
    ["source", "outcome"],  # outcome: cache_hit, resolved, unresolved
)
resolution_duration_seconds = Histogram(
    "animap_resolution_duration_seconds",
    "Duration of full (uncached) resolutions in seconds",
    ["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0),
)

# Candidate-source fan-out
candidate_queries_total = Counter(
    "animap_candidate_queries_total",
    "Total number of candidate-source search queries",
    ["source", "status"],  # status: ok, empty, failed, timeout
)

# Resolution cache
resolution_cache_lookups_total = Counter(
    "animap_resolution_cache_lookups_total",
    "Resolution cache lookups by layer and result",
    ["source", "layer", "result"],  # layer: memory, store; result: hit, miss, error
)
mapping_persist_failures_total = Counter(
    "animap_mapping_persist_failures_total",
    "Total number of failed writes or deletes against the mapping store",
    ["source"],
)
stale_mappings_total = Counter(
    "animap_stale_mappings_total",
    "Resolved ids that failed to yield content and were invalidated",
    ["source"],
)

# Database pool and retry metrics
db_pool_size = Gauge(
    "animap_db_pool_size",
    "Configured database connection pool size",
)
db_retry_attempts_total = Counter(
    "animap_db_retry_attempts_total",
    "Total number of database operation retry attempts",
    ["operation_type"],
)
db_lock_errors_total = Counter(
    "animap_db_lock_errors_total",
    "Total number of database lock errors encountered",
)
db_retries_failed_total = Counter(
    "animap_db_retries_failed_total",
    "Total number of database operations that failed after all retries",
    ["operation_type"],
)
