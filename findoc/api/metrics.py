"""Prometheus metrics for the document service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Document submission metrics
- Analysis and deletion outcomes

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Ingestion metrics
documents_submitted_total = Counter(
    "documents_submitted_total",
    "Total document submissions",
    ["document_type", "outcome"],  # accepted, rejected, error, timeout
)

document_upload_size_bytes = Histogram(
    "document_upload_size_bytes",
    "Document upload size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 10485760, 20971520),  # 1KB to 20MB
)

# Analysis metrics
analysis_duration_seconds = Histogram(
    "analysis_duration_seconds",
    "Time from worker start to terminal status",
    ["document_type"],
    buckets=(1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

analysis_outcomes_total = Counter(
    "analysis_outcomes_total",
    "Analysis worker outcomes",
    ["document_type", "status"],  # Analyzed, Failed
)

# Deletion metrics
deletions_total = Counter(
    "document_deletions_total",
    "Document deletion attempts",
    ["document_type", "outcome"],  # deleted, rejected, storage_error
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
