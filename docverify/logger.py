"""
Structured logging system for docverify.

Provides centralized logging with console and file outputs, and
metrics tracking for monitoring verification outcomes.
"""

import json
import logging
import os
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring pipeline health.
    """

    def __init__(
        self,
        name: str = "docverify",
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

        # Pipeline runs may log from worker threads
        self._lock = threading.Lock()
        self.metrics = {
            "verifications_attempted": 0,
            "verifications_completed": 0,
            "verifications_failed": 0,
            "status_counts": {},
            "match_type_counts": {},
            "errors_by_type": {},
            "document_type_stats": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"docverify_{datetime.now().strftime('%Y%m%d')}.log"
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

    def record_attempt(self, document_type: str):
        """Record that a claim entered the pipeline."""
        with self._lock:
            self.metrics["verifications_attempted"] += 1
            stats = self.metrics["document_type_stats"].setdefault(
                document_type, {"attempts": 0, "completed": 0, "verified": 0}
            )
            stats["attempts"] += 1

    def record_outcome(self, document_type: str, status: str, match_type: str):
        """Record a persisted verification."""
        with self._lock:
            self.metrics["verifications_completed"] += 1
            counts = self.metrics["status_counts"]
            counts[status] = counts.get(status, 0) + 1
            match_counts = self.metrics["match_type_counts"]
            match_counts[match_type] = match_counts.get(match_type, 0) + 1
            stats = self.metrics["document_type_stats"].setdefault(
                document_type, {"attempts": 0, "completed": 0, "verified": 0}
            )
            stats["completed"] += 1
            if status == "VERIFIED":
                stats["verified"] += 1

    def record_failure(self, document_type: str, error_type: str):
        """Record a run that aborted before persistence."""
        with self._lock:
            self.metrics["verifications_failed"] += 1
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        with self._lock:
            metrics_copy = json.loads(json.dumps(self.metrics))
        for document_type, stats in metrics_copy["document_type_stats"].items():
            if stats["completed"] > 0:
                stats["verified_rate"] = round(stats["verified"] / stats["completed"], 3)
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        attempted = metrics["verifications_attempted"]
        completed = metrics["verifications_completed"]
        rate = 0
        if attempted > 0:
            rate = round(completed / attempted * 100, 1)

        self.info("=== Verification Session Metrics ===")
        self.info(f"Verifications: {completed}/{attempted} completed ({rate}%)")

        if metrics["status_counts"]:
            self.info("Dispositions:")
            for status, count in metrics["status_counts"].items():
                self.info(f"  {status}: {count}")

        if metrics["document_type_stats"]:
            self.info("Document Types:")
            for document_type, stats in metrics["document_type_stats"].items():
                verified = stats.get("verified_rate", 0) * 100
                self.info(f"  {document_type}: {stats['completed']}/{stats['attempts']} ({verified:.1f}% verified)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "docverify",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Defaults come from DOCVERIFY_LOG_LEVEL, DOCVERIFY_LOG_DIR and
    DOCVERIFY_LOG_FILE ("0" disables the file handler).

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        level = level or os.getenv("DOCVERIFY_LOG_LEVEL", "INFO")
        if "log_dir" not in kwargs and os.getenv("DOCVERIFY_LOG_DIR"):
            kwargs["log_dir"] = Path(os.environ["DOCVERIFY_LOG_DIR"])
        if "enable_file" not in kwargs:
            kwargs["enable_file"] = os.getenv("DOCVERIFY_LOG_FILE", "1") != "0"
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
