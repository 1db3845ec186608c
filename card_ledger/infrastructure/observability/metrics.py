"""Prometheus metrics for charge volume, invoice synchronization and limit recalculations"""

from prometheus_client import Counter, Histogram

# Charge lifecycle metrics
charge_operations_counter = Counter(
    "card_ledger_charge_operations_total",
    "Card charges created, updated or deleted",
    ["operation", "type"],  # create | update | delete ; expense | income
)

# Invoice aggregate metrics
invoice_sync_counter = Counter(
    "card_ledger_invoice_sync_total",
    "Invoice aggregate changes",
    ["action"],  # created | updated | deleted
)

invoice_payment_counter = Counter(
    "card_ledger_invoice_payments_total",
    "Invoice payment status changes",
    ["status"],  # paid | unpaid
)

limit_recalculation_counter = Counter(
    "card_ledger_limit_recalculations_total",
    "Full current-limit recalculations after a card limit edit",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_charge_operation(operation: str, charge_type: str, count: int = 1) -> None:
    """Record charge lifecycle metrics"""
    charge_operations_counter.labels(operation=operation, type=charge_type).inc(count)
