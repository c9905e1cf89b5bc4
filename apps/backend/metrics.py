"""
Zen AI Fax - Prometheus Metrics
===============================
Centralized metrics definitions for observability.
"""

from prometheus_client import Counter, Histogram, Info

# =============================================================================
# Application Info
# =============================================================================

app_info = Info("zen_ai_fax_app", "Application information")
app_info.info({
    "version": "0.1.0",
    "service": "backend",
})

# =============================================================================
# Request Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0)
)

# =============================================================================
# Intake Metrics
# =============================================================================

uploads_total = Counter(
    "uploads_total",
    "Total document uploads by outcome",
    labelnames=["outcome"]
)

blob_storage_fallbacks_total = Counter(
    "blob_storage_fallbacks_total",
    "Uploads that fell back to the local path after a blob storage failure"
)

analysis_duration_seconds = Histogram(
    "analysis_duration_seconds",
    "Document analysis duration in seconds",
    labelnames=["analyzer"],
    buckets=(0.01, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0)
)
