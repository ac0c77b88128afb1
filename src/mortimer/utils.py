"""Utility functions for Mortimer"""

import logging
import os

import psutil


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_int_env(key: str) -> int:
    """Get integer value from environment variable, return 0 if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return 0
    try:
        return int(val)
    except ValueError:
        return 0


def get_str_env(key: str, default: str) -> str:
    """
    Get string from environment variable, return default if not set.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        String value or default
    """
    return os.getenv(key, default)


def default_worker_count() -> int:
    """Get the worker pool size.

    Priority:
    1. MORTIMER_WORKERS environment variable (if set and positive)
    2. Number of logical CPUs

    Returns:
        Number of workers, at least 1
    """
    workers = get_int_env('MORTIMER_WORKERS')
    if workers > 0:
        return workers
    return psutil.cpu_count(logical=True) or 1


def default_queue_size(workers: int) -> int:
    """Bounded work queue size, MORTIMER_QUEUE_SIZE or twice the worker count."""
    size = get_int_env('MORTIMER_QUEUE_SIZE')
    if size > 0:
        return size
    return max(1, workers * 2)


def setup_logging(verbose: int = 0):
    """
    Configure root logging to stderr.

    Level comes from MORTIMER_LOG_LEVEL (default INFO); any -v switches to DEBUG.
    """
    if verbose > 0:
        log_level = logging.DEBUG
    else:
        log_level_name = get_str_env('MORTIMER_LOG_LEVEL', 'INFO').upper()
        log_level = getattr(logging, log_level_name, logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)


def csv_to_set(csv: str) -> set[str]:
    """Split a comma-separated option value into a set of upper-cased names."""
    return {part.strip().upper() for part in csv.split(',') if part.strip()}
