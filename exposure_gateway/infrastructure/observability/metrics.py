"""Prometheus metrics for engine usage, replay cost and webhook performance"""

from prometheus_client import Counter, Histogram

# Engine metrics
scenario_counter = Counter(
    "exposure_scenario_total",
    "What-if scenarios simulated",
    ["type"],  # refinance | early_payment | partial_payment | term_change
)

match_counter = Counter(
    "exposure_match_total",
    "Facility matcher requests",
    ["outcome"],  # matched | no_suitable_facility
)

replay_duration_histogram = Histogram(
    "exposure_replay_duration_seconds",
    "Settlement replay time per request",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

repayment_counter = Counter(
    "exposure_repayments_total",
    "Repayments appended to the ledger",
    ["resulting_status"],
)

validation_failures_counter = Counter(
    "exposure_validation_failures_total",
    "Requests rejected by engine validation",
    ["operation"],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Portfolio event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_scenarios(scenario_types: list) -> None:
    for scenario_type in scenario_types:
        scenario_counter.labels(type=scenario_type).inc()


def record_match(matched: bool) -> None:
    match_counter.labels(outcome="matched" if matched else "no_suitable_facility").inc()
