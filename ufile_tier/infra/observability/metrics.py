from prometheus_client import Counter, Histogram

# Low-cardinality labels: operation name and status, never bucket or key.
REQUESTS = Counter(
    "ufile_requests_total",
    "Total outbound UFile requests",
    ["operation", "status"],
)

LATENCY = Histogram(
    "ufile_request_duration_seconds",
    "Outbound UFile request latency in seconds",
    ["operation"],
)

BUCKET_RECOVERIES = Counter(
    "ufile_bucket_recoveries_total",
    "Buckets auto-created after a bucket-not-exist error",
    ["operation", "outcome"],
)
