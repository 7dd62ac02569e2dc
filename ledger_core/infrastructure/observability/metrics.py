"""Prometheus metrics for installment batches, duplicate resolution and cycle locks"""

from prometheus_client import Counter, Histogram

# Installment metrics
installment_plan_counter = Counter(
    "ledger_installment_plans_total",
    "Installment batches committed",
    ["mode"],  # divide | replicate
)

installment_line_counter = Counter(
    "ledger_installment_lines_total",
    "Transactions generated from installment plans",
)

installment_batch_failure_counter = Counter(
    "ledger_installment_batch_failures_total",
    "Installment batches rolled back after a persistence failure",
)

# Duplicate metrics
duplicate_resolution_counter = Counter(
    "ledger_duplicate_resolutions_total",
    "Duplicate suggestions resolved by users",
    ["action"],  # merge | dismiss | clear
)

# Billing cycle metrics
cycle_lock_counter = Counter(
    "ledger_cycle_locks_total",
    "Billing cycle lock attempts",
    ["reason"],  # create | relock | skipped
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_installment_plan(mode: str, count: int) -> None:
    """Record a committed installment batch"""
    installment_plan_counter.labels(mode=mode).inc()
    installment_line_counter.inc(count)
