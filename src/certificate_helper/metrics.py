"""Prometheus metrics for the Certificate Helper Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "certificate_helper_reconcile_total",
    "Total number of reconciliations",
    ["kind", "action", "result"],
)

reconcile_duration_seconds = Histogram(
    "certificate_helper_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

error_total = Counter(
    "certificate_helper_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# Workflow metrics
certificate_operations_total = Counter(
    "certificate_helper_certificate_operations_total",
    "Total number of certificate issuance steps",
    ["operation", "result"],
)

webhook_operations_total = Counter(
    "certificate_helper_webhook_operations_total",
    "Total number of webhook configuration operations",
    ["operation", "variant", "result"],
)

csr_approval_wait_seconds = Histogram(
    "certificate_helper_csr_approval_wait_seconds",
    "Time spent waiting for a signing request to be signed",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

# API call metrics
api_call_total = Counter(
    "certificate_helper_api_call_total",
    "Total number of Kubernetes API calls",
    ["kind", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "certificate_helper_api_call_duration_seconds",
    "Duration of Kubernetes API calls in seconds",
    ["kind", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "certificate_helper_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["kind"],
)

# Admission metrics
admission_reviews_total = Counter(
    "certificate_helper_admission_reviews_total",
    "Total number of admission reviews answered",
    ["allowed"],
)
