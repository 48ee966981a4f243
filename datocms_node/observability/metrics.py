"""Prometheus metrics for the DatoCMS node."""

from prometheus_client import Counter, Histogram

# Node operations
OPERATION_COUNT = Counter(
    "datocms_node_operation_count_total",
    "Total number of node operations processed, one per input item",
    labelnames=["resource", "operation", "status"],
)

# CMA requests
REMOTE_REQUEST_LATENCY = Histogram(
    "datocms_node_remote_request_latency_seconds",
    "Latency of Content Management API requests in seconds",
    labelnames=["method", "status"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

REMOTE_ERRORS = Counter(
    "datocms_node_remote_errors_total",
    "Total number of failed Content Management API requests",
    labelnames=["method", "status"],
)

# Upsert
UPSERT_OUTCOMES = Counter(
    "datocms_node_upsert_outcomes_total",
    "Upsert resolutions by outcome",
    labelnames=["outcome"],
)

# Bulk upload
BULK_UPLOAD_RESULTS = Counter(
    "datocms_node_bulk_upload_results_total",
    "Bulk upload URLs by result",
    labelnames=["result"],
)
