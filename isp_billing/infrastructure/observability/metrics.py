"""Prometheus metrics for billing activity, the overdue sweep and external calls"""

from prometheus_client import Counter, Histogram

# Ledger metrics
invoices_issued_counter = Counter(
    "isp_invoices_issued_total",
    "Invoices issued",
)

invoice_amount_histogram = Histogram(
    "isp_invoice_amount_usd",
    "Face value of issued invoices in USD",
    buckets=[10, 25, 50, 75, 100, 150, 250],
)

payments_reported_counter = Counter(
    "isp_payments_reported_total",
    "Payments reported by customers",
    ["currency"],  # USD | VED
)

invoice_transition_counter = Counter(
    "isp_invoice_transitions_total",
    "Invoice state transitions",
    ["to_state"],  # paid | overdue
)

contract_transition_counter = Counter(
    "isp_contract_transitions_total",
    "Contract state transitions",
    ["to_state"],  # active | suspended | finalized
)

# Sweep metrics
sweep_duration_histogram = Histogram(
    "isp_sweep_duration_seconds",
    "Overdue sweep run time",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

sweep_skipped_counter = Counter(
    "isp_sweep_skipped_total",
    "Sweep triggers skipped because a run was in progress",
)

sweep_failure_counter = Counter(
    "isp_sweep_invoice_failures_total",
    "Invoices the sweep failed to process",
)

# External service metrics
exchange_rate_failures_counter = Counter(
    "exchange_rate_fetch_failures_total",
    "Failed exchange rate fetches (fallback rate used)",
)

notifier_failure_counter = Counter(
    "notifier_failures_total",
    "Failed reminder notification attempts",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_invoice_issued(amount_usd: float) -> None:
    invoices_issued_counter.inc()
    invoice_amount_histogram.observe(amount_usd)


def record_invoice_transition(to_state: str) -> None:
    invoice_transition_counter.labels(to_state=to_state).inc()


def record_contract_transition(to_state: str) -> None:
    contract_transition_counter.labels(to_state=to_state).inc()
