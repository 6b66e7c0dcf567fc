"""Prometheus metrics for quotes, conversions, contract signing, charges and event delivery"""

from prometheus_client import Counter, Histogram

# Quote metrics
quote_created_counter = Counter(
    "quote_engine_quotes_created_total",
    "Quotes created",
    ["plan"],
)

# Conversion metrics
conversion_counter = Counter(
    "quote_engine_conversion_total",
    "Lead to policy conversion attempts",
    ["outcome"],  # created | existing | rejected
)

# Contract metrics
contract_sign_counter = Counter(
    "quote_engine_contract_sign_total",
    "Contract signing attempts",
    ["outcome", "reason"],  # signed | rejected, validation reason or "none"
)

# Billing metrics
charge_recorded_counter = Counter(
    "quote_engine_charges_recorded_total",
    "Policy charges reported by the billing collaborator",
    ["status"],
)

# Event delivery metrics
event_latency_histogram = Histogram(
    "event_delivery_latency_seconds",
    "Outbound event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

event_failure_counter = Counter(
    "event_delivery_failures_total",
    "Failed outbound event deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_conversion(outcome: str) -> None:
    conversion_counter.labels(outcome=outcome).inc()


def record_sign_attempt(signed: bool, reason: str = "none") -> None:
    """Record sign outcome; rejected attempts are labelled with the validation reason"""
    contract_sign_counter.labels(outcome="signed" if signed else "rejected", reason=reason).inc()
