"""
Structured logging for Kursverwaltung.

Provides centralized logging to console and a daily log file, plus
counters that show how the storage backend and the photo scan behave
over a session.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with console and file outputs.
    Tracks request, scan and lookup-resolution metrics.
    """

    def __init__(
        self,
        name: str = "kursverwaltung",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "api_calls": 0,
            "requests_by_collection": {},
            "failures_by_collection": {},
            "errors_by_type": {},
            "scans": {"attempted": 0, "successful": 0, "failed": 0},
            "lookups": {"resolved": 0, "unresolved": 0},
        }
        # Dashboard loads count requests from worker threads
        self._metrics_lock = threading.Lock()

        if enable_console:
            # stderr keeps CLI tables on stdout clean
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"kursverwaltung_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change the logger and console level; the file keeps everything."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
        self.logger.log(level, message)

    # Metric tracking

    def record_api_call(self, collection: str):
        """Count a request against the storage API."""
        with self._metrics_lock:
            self.metrics["api_calls"] += 1
            per_collection = self.metrics["requests_by_collection"]
            per_collection[collection] = per_collection.get(collection, 0) + 1

    def record_api_failure(self, collection: str, error_type: str):
        """Count a failed storage request."""
        with self._metrics_lock:
            failures = self.metrics["failures_by_collection"]
            failures[collection] = failures.get(collection, 0) + 1
            self._count_error(error_type)

    def record_scan_attempt(self):
        with self._metrics_lock:
            self.metrics["scans"]["attempted"] += 1

    def record_scan_success(self):
        with self._metrics_lock:
            self.metrics["scans"]["successful"] += 1

    def record_scan_failure(self, error_type: str):
        with self._metrics_lock:
            self.metrics["scans"]["failed"] += 1
            self._count_error(error_type)

    def record_lookup(self, resolved: bool):
        """Count the outcome of a fuzzy lookup resolution."""
        key = "resolved" if resolved else "unresolved"
        with self._metrics_lock:
            self.metrics["lookups"][key] += 1

    def _count_error(self, error_type: str):
        # caller holds _metrics_lock
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics, including per-collection failure rates."""
        with self._metrics_lock:
            metrics_copy = json.loads(json.dumps(self.metrics))
        rates = {}
        for collection, calls in metrics_copy["requests_by_collection"].items():
            failed = metrics_copy["failures_by_collection"].get(collection, 0)
            rates[collection] = round(failed / calls, 3) if calls else 0.0
        metrics_copy["failure_rate_by_collection"] = rates
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()
        scans = metrics["scans"]
        lookups = metrics["lookups"]

        self.info("=== Session Metrics ===")
        self.info(f"API Calls: {metrics['api_calls']}")
        for collection, calls in metrics["requests_by_collection"].items():
            rate = metrics["failure_rate_by_collection"][collection] * 100
            self.info(f"  {collection}: {calls} calls ({rate:.1f}% failed)")
        self.info(f"Scans: {scans['successful']}/{scans['attempted']} successful")
        self.info(f"Lookups: {lookups['resolved']} resolved, {lookups['unresolved']} unresolved")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "kursverwaltung",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
