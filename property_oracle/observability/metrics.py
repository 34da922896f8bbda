"""
Prometheus metrics for property-oracle

Counters and histograms for the hashing and submission pipelines, kept
on a dedicated registry so importing this module never touches the
global default registry.
"""
import os
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


REGISTRY = CollectorRegistry()


# =======================
# HASHING METRICS
# =======================

documents_hashed_total = Counter(
    name="oracle_documents_hashed_total",
    documentation="Documents processed by the hashing pipeline",
    labelnames=["status"],  # status: emitted, validation_failed, structural_error
    registry=REGISTRY,
)

validation_failures_total = Counter(
    name="oracle_validation_failures_total",
    documentation="Documents that failed schema validation",
    labelnames=["data_group"],
    registry=REGISTRY,
)

property_hash_duration_seconds = Histogram(
    name="oracle_property_hash_duration_seconds",
    documentation="Time spent hashing one property",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

# =======================
# CHAIN / ELIGIBILITY METRICS
# =======================

chain_reads_total = Counter(
    name="oracle_chain_reads_total",
    documentation="Consensus state reads issued to the chain",
    labelnames=["operation", "outcome"],  # outcome: success, error
    registry=REGISTRY,
)

items_skipped_total = Counter(
    name="oracle_items_skipped_total",
    documentation="Manifest items skipped by the eligibility gate",
    labelnames=["reason"],
    registry=REGISTRY,
)

# =======================
# SUBMISSION METRICS
# =======================

batches_submitted_total = Counter(
    name="oracle_batches_submitted_total",
    documentation="Batches handed to a submission strategy",
    labelnames=["strategy", "status"],  # status: success, failure
    registry=REGISTRY,
)

items_submitted_total = Counter(
    name="oracle_items_submitted_total",
    documentation="DataItems included in accepted batches",
    labelnames=["strategy"],
    registry=REGISTRY,
)

submission_retries_total = Counter(
    name="oracle_submission_retries_total",
    documentation="Retry attempts made by submission strategies",
    labelnames=["strategy", "error_class"],  # error_class: nonce, transient
    registry=REGISTRY,
)

batch_submission_duration_seconds = Histogram(
    name="oracle_batch_submission_duration_seconds",
    documentation="Time from starting a batch to it being accepted",
    labelnames=["strategy"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Imported lazily so importing metrics never binds a port
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(batch_submission_duration_seconds, strategy="api"):
            # do work
            pass
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        metric = self.histogram.labels(**self.labels) if self.labels else self.histogram
        self.timer = metric.time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    counter.labels(**labels).inc(value)


def get_counter_value(counter: Counter, **labels) -> float:
    """Current value of a labelled counter (used by tests and run summaries)."""
    return REGISTRY.get_sample_value(f"{counter._name}_total", labels) or 0.0
