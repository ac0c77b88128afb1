"""Prometheus metrics for Mortimer runs"""

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

# ============================================================================
# File Processing Metrics
# ============================================================================

files_processed_total = Counter('mortimer_files_processed_total', 'Total number of log files processed')

files_skipped_total = Counter(
    'mortimer_files_skipped_total',
    'Total number of files skipped',
    ['reason'],  # unknown, skip, suffix
)

bytes_processed_total = Counter('mortimer_bytes_processed_total', 'Total bytes read from log files')

file_processing_seconds = Histogram(
    'mortimer_file_processing_seconds',
    'Time spent processing a single log file',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
    # 10ms to 5 minutes - small component logs up to multi-GB debug logs
)


# ============================================================================
# Entry & Field Metrics
# ============================================================================

entries_processed_total = Counter('mortimer_entries_processed_total', 'Total number of entries parsed')

entries_dropped_total = Counter(
    'mortimer_entries_dropped_total', 'Total number of entries dropped because their prefix did not match'
)

fields_emitted_total = Counter('mortimer_fields_emitted_total', 'Total number of fields written to sinks')


# ============================================================================
# Helper Functions
# ============================================================================


def record_file_processed(size_bytes: int, duration: float, entries: int, dropped: int):
    """Record metrics for one completed file."""
    files_processed_total.inc()
    bytes_processed_total.inc(size_bytes)
    file_processing_seconds.observe(duration)
    entries_processed_total.inc(entries)
    entries_dropped_total.inc(dropped)


def record_file_skipped(reason: str):
    files_skipped_total.labels(reason=reason).inc()


def record_field_emitted():
    fields_emitted_total.inc()


def write_metrics(path: str):
    """Write the default registry in text exposition format."""
    write_to_textfile(path, REGISTRY)
