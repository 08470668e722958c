"""
Structured logging for the group message job store.

Provides centralized logging with console and file outputs, keyword
context, and counters for monitoring queue health (enqueues, removals,
degraded and fatal reads, corruption flags).
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring queue activity and storage failures.
    """

    def __init__(
        self,
        name: str = "groupqueue",
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
        self.logger.handlers.clear()  # Remove existing handlers

        # Metrics tracking
        self.metrics = {
            "jobs_enqueued": 0,
            "jobs_removed": 0,
            "degraded_reads": 0,
            "fatal_reads": 0,
            "corruption_flags": 0,
            "errors_by_type": {},
            "failures_by_operation": {},
        }

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"groupqueue_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

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
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_enqueue(self):
        """Increment enqueued job counter."""
        self.metrics["jobs_enqueued"] += 1

    def record_removal(self, count: int):
        """Add removed jobs to the counter."""
        self.metrics["jobs_removed"] += count

    def record_read_failure(self, operation: str, error_type: str, fatal: bool):
        """Record a failed read and whether it was fatal or degraded."""
        if fatal:
            self.metrics["fatal_reads"] += 1
        else:
            self.metrics["degraded_reads"] += 1

        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

        if operation not in self.metrics["failures_by_operation"]:
            self.metrics["failures_by_operation"][operation] = 0
        self.metrics["failures_by_operation"][operation] += 1

    def record_corruption_flag(self):
        """Record that storage corruption was flagged."""
        self.metrics["corruption_flags"] += 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        metrics_copy = self.metrics.copy()
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        metrics_copy["failures_by_operation"] = dict(self.metrics["failures_by_operation"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Job Queue Metrics ===")
        self.info(f"Enqueued: {metrics['jobs_enqueued']}, removed: {metrics['jobs_removed']}")
        self.info(
            f"Read failures: {metrics['degraded_reads']} degraded, "
            f"{metrics['fatal_reads']} fatal"
        )

        if metrics["corruption_flags"]:
            self.warning(f"Corruption flagged {metrics['corruption_flags']} time(s)")

        if metrics["failures_by_operation"]:
            self.info("Failures by operation:")
            for operation, count in metrics["failures_by_operation"].items():
                self.info(f"  {operation}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "groupqueue",
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


def configure_logger(settings) -> StructuredLogger:
    """Replace the global logger with one built from Settings."""
    global _global_logger

    _global_logger = StructuredLogger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_to_file,
    )
    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
