"""
Observability Module - Logging, Metrics, and Health

Provides:
- Structured JSON logging
- Metrics collection (append latency, submission outcomes, decode failures)
- Health check utilities

Configuration:
- STARREGISTRY_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- STARREGISTRY_LOG_FORMAT: json, text (default: json in production)
- STARREGISTRY_PRODUCTION: Enable production mode

Usage:
    from starregistry.observability import get_logger

    logger = get_logger(__name__)
    logger.info("Block appended", height=block.height)
"""

import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional


# ============================================================
# CONFIGURATION
# ============================================================

def _is_production() -> bool:
    return os.environ.get("STARREGISTRY_PRODUCTION", "").lower() in ("1", "true", "yes")


def _get_log_level() -> int:
    level_str = os.environ.get("STARREGISTRY_LOG_LEVEL", "INFO").upper()
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level_str, logging.INFO)


def _use_json_logging() -> bool:
    format_str = os.environ.get("STARREGISTRY_LOG_FORMAT", "").lower()
    if format_str == "json":
        return True
    if format_str == "text":
        return False
    return _is_production()


# ============================================================
# STRUCTURED LOGGING
# ============================================================

_STANDARD_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.000000+00:00",
        "level": "INFO",
        "logger": "starregistry.core.ledger",
        "message": "Block appended",
        "height": 3,
        ...extra fields...
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_FIELDS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        msg = f"{timestamp} {record.levelname:8} {record.name}: {record.getMessage()}"

        extras = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
        ]
        if extras:
            msg += " (" + ", ".join(extras) + ")"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that turns keyword arguments into structured fields.

    Usage:
        logger = get_logger(__name__)
        logger.info("Star registered", address=address, height=3)
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel", "extra"):
                extra[key] = kwargs.pop(key)

        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """
    Get a structured logger for the given name.

    Args:
        name: Logger name (typically __name__)
    """
    return ContextLogger(logging.getLogger(name), {})


def setup_logging() -> None:
    """
    Configure logging for an application embedding the registry.

    Call this once at startup. Library code never calls it.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_get_log_level())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_get_log_level())

    if _use_json_logging():
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger.addHandler(handler)


# ============================================================
# METRICS
# ============================================================

@dataclass
class MetricsCollector:
    """
    Simple in-memory metrics collector.

    Counters are updated from concurrent submitters, so every
    mutation goes through the collector's own lock.
    """

    # Counters
    blocks_appended: int = 0
    decode_failures: int = 0
    submissions: Dict[str, int] = field(default_factory=dict)

    # Histograms (simplified as lists)
    append_latencies_ms: list = field(default_factory=list)

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def record_append(self, latency_ms: float) -> None:
        """Record a block append."""
        with self._lock:
            self.blocks_appended += 1
            self.append_latencies_ms.append(latency_ms)
            # Keep only last 1000 samples
            if len(self.append_latencies_ms) > 1000:
                self.append_latencies_ms = self.append_latencies_ms[-1000:]

    def record_submission(self, outcome: str) -> None:
        """Record the terminal state of a star submission."""
        with self._lock:
            self.submissions[outcome] = self.submissions.get(outcome, 0) + 1

    def record_decode_failure(self) -> None:
        with self._lock:
            self.decode_failures += 1

    def reset(self) -> None:
        """Zero all counters (for testing only)."""
        with self._lock:
            self.blocks_appended = 0
            self.decode_failures = 0
            self.submissions = {}
            self.append_latencies_ms = []

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary."""
        def percentile(data: list, p: float) -> Optional[float]:
            if not data:
                return None
            sorted_data = sorted(data)
            idx = int(len(sorted_data) * p)
            return sorted_data[min(idx, len(sorted_data) - 1)]

        with self._lock:
            latencies = list(self.append_latencies_ms)
            return {
                "blocks_appended": self.blocks_appended,
                "decode_failures": self.decode_failures,
                "submissions": dict(self.submissions),
                "append_latency_p50_ms": percentile(latencies, 0.5),
                "append_latency_p95_ms": percentile(latencies, 0.95),
                "append_latency_p99_ms": percentile(latencies, 0.99),
            }


# Global metrics instance
_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics


# ============================================================
# HEALTH CHECKS
# ============================================================

@dataclass
class HealthStatus:
    """Health check result."""
    healthy: bool
    checks: Dict[str, Dict[str, Any]]
    duration_ms: float


def check_health(ledger=None) -> HealthStatus:
    """
    Run all health checks.

    Args:
        ledger: Ledger instance (chain integrity is checked when given)
    """
    from .core.validator import ChainValidator

    start = time.perf_counter()
    checks = {}
    all_healthy = True

    checks["liveness"] = {"status": "healthy"}

    if ledger is not None:
        head = ledger.store.get_head()
        checks["block_store"] = {
            "status": "healthy",
            "height": head.last_height,
            "last_hash": head.last_hash[:16] + "..." if head.last_hash else None,
        }

        report = ChainValidator().validate(ledger)
        checks["chain_integrity"] = {
            "status": "healthy" if report.is_valid else "unhealthy",
            "valid": report.is_valid,
            "findings": report.messages,
        }
        if not report.is_valid:
            all_healthy = False

    duration_ms = (time.perf_counter() - start) * 1000

    return HealthStatus(
        healthy=all_healthy,
        checks=checks,
        duration_ms=round(duration_ms, 2),
    )
