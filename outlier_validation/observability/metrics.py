"""
Prometheus metrics collection for the outlier validation pipeline

This module provides metrics instrumentation for monitoring data quality
(invalid records, per-record errors) and run performance.
"""
import os
from typing import Mapping, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# DATA QUALITY METRICS
# =======================

# "Data quality / invalid": one increment per invalid group
invalid_records_total = Counter(
    name="outlier_invalid_records_total",
    documentation="Total number of records with at least one quantitative field out of bounds",
    labelnames=["job"],
    registry=REGISTRY,
)

# Per-record failures (missing statistics, malformed fields)
record_errors_total = Counter(
    name="outlier_record_errors_total",
    documentation="Total number of records skipped because they could not be validated",
    labelnames=["job", "error_type"],
    registry=REGISTRY,
)

# Groups by outcome
groups_processed_total = Counter(
    name="outlier_groups_processed_total",
    documentation="Total number of groups processed",
    labelnames=["job", "status"],  # status: valid, invalid, error, no_record, duplicate
    registry=REGISTRY,
)

# =======================
# RUN METRICS
# =======================

run_duration_seconds = Histogram(
    name="outlier_run_duration_seconds",
    documentation="Time spent on a validation run in seconds",
    labelnames=["job", "mode"],  # mode: local, spark
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
    registry=REGISTRY,
)

output_records_total = Counter(
    name="outlier_output_records_total",
    documentation="Total number of records written by the output policy",
    labelnames=["job", "output_type"],
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
    # Lazy import: avoids binding a port on import
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if value > 0:
        counter.labels(**labels).inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    """
    Observe a value in a histogram metric

    Args:
        histogram: Prometheus Histogram metric
        value: Value to observe
        **labels: Label values for the metric
    """
    histogram.labels(**labels).observe(value)


# =======================
# RUN-SPECIFIC HELPERS
# =======================

def record_validation_run(
    job: str,
    mode: str,
    output_type: str,
    counters: Mapping[str, int],
    output_records: int,
    duration_seconds: float
) -> None:
    """
    Publish the counters of a finished validation run.

    Args:
        job: Job name used as label
        mode: "local" or "spark"
        output_type: Output policy of the run
        counters: Aggregator counters (valid, invalid, no_record,
                  duplicate_records, record_errors.<type>)
        output_records: Number of records written
        duration_seconds: Run duration in seconds
    """
    invalid = counters.get("invalid", 0)
    increment_counter(invalid_records_total, invalid, job=job)

    increment_counter(groups_processed_total, counters.get("valid", 0), job=job, status="valid")
    increment_counter(groups_processed_total, invalid, job=job, status="invalid")
    increment_counter(groups_processed_total, counters.get("no_record", 0), job=job, status="no_record")
    increment_counter(groups_processed_total, counters.get("duplicate_records", 0), job=job, status="duplicate")

    for name, count in counters.items():
        if name.startswith("record_errors."):
            error_type = name.split(".", 1)[1]
            increment_counter(record_errors_total, count, job=job, error_type=error_type)
            increment_counter(groups_processed_total, count, job=job, status="error")

    increment_counter(output_records_total, output_records, job=job, output_type=output_type)
    observe_histogram(run_duration_seconds, duration_seconds, job=job, mode=mode)
