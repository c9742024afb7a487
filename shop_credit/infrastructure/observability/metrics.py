"""Prometheus metrics for monitoring payment allocation and credit sales"""

from prometheus_client import Counter, Histogram

from shop_credit.domain.models import AllocationResult

# Allocation metrics
allocation_counter = Counter(
    "shop_credit_allocation_total",
    "Payment allocations by outcome",
    ["outcome"],  # settled | partial | overpaid | replayed | <error kind>
)

installments_settled_counter = Counter(
    "shop_credit_installments_settled_total",
    "Installments fully settled by payments",
)

payment_amount_histogram = Histogram(
    "shop_credit_payment_amount",
    "Payment amounts received (currency units)",
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000],
)

# Sale metrics
sale_counter = Counter(
    "shop_credit_sale_total",
    "Sales recorded",
    ["payment_method"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_allocation(result: AllocationResult) -> None:
    """Record allocation metrics for monitoring settlement and overpayment rates"""
    if result.replayed:
        outcome = "replayed"
    elif result.overpaid:
        outcome = "overpaid"
    elif result.installments_processed > 0:
        outcome = "settled"
    else:
        outcome = "partial"

    allocation_counter.labels(outcome=outcome).inc()
    if not result.replayed:
        installments_settled_counter.inc(result.installments_processed)
        payment_amount_histogram.observe(float(result.amount))


def record_allocation_failure(kind: str) -> None:
    allocation_counter.labels(outcome=kind).inc()
