"""
Observability module: Prometheus metrics and structured JSON logging.

- Custom business metrics (Gauges, Counters, Histogram)
- PrometheusMetrics integration for automatic Flask instrumentation
- JSON structured logging via python-json-logger
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import TYPE_CHECKING

from flask import Flask
from prometheus_client import Counter, Gauge, Histogram
from prometheus_flask_exporter import PrometheusMetrics

if TYPE_CHECKING:
    from terminal_broker.domain.registry import SessionRegistry

# =============================================================================
# Prometheus Custom Metrics
# =============================================================================

ACTIVE_SESSIONS = Gauge(
    "broker_active_sessions",
    "Number of registered terminal sessions",
)

SESSIONS_CREATED = Counter(
    "broker_sessions_created_total",
    "Sessions created, by session type",
    ["type"],
)

SESSION_CREATE_DURATION = Histogram(
    "broker_session_create_duration_seconds",
    "Latency of session creation (image check, workspace, container start)",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

RUNTIME_ERRORS_TOTAL = Counter(
    "broker_runtime_errors_total",
    "Docker operation failures, by operation",
    ["operation"],
)

ERRORS_TOTAL = Counter(
    "broker_errors_total",
    "Total number of errors by endpoint",
    ["endpoint"],
)


# =============================================================================
# Metrics Initialization
# =============================================================================

def init_metrics(app: Flask) -> PrometheusMetrics:
    """
    Initialize PrometheusMetrics on the Flask app.

    Auto-instruments all routes with flask_http_request_duration_seconds
    and flask_http_request_total. Exposes /metrics endpoint.
    """
    metrics = PrometheusMetrics(app, path="/metrics")

    # Exempt /metrics from rate limiting
    from terminal_broker.api.rate_limit import limiter
    metrics_view = app.view_functions.get("prometheus_metrics")
    if metrics_view is not None:
        limiter.exempt(metrics_view)

    return metrics


# =============================================================================
# JSON Structured Logging
# =============================================================================

class SensitiveDataFilter(logging.Filter):
    """Filter to mask credentials in log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r'api[_-]?key["\']?\s*[:=]\s*["\']?[^"\'}\s,]+', re.I), 'api_key=***'),
        (re.compile(r'token["\']?\s*[:=]\s*["\']?[^"\'}\s,]+', re.I), 'token=***'),
        (re.compile(r'\bsk-[A-Za-z0-9_-]{8,}'), 'sk-***'),
        (re.compile(r'\bAIza[0-9A-Za-z_-]{20,}'), 'AIza***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


def resolve_log_level(configured: str | None) -> str:
    """
    Pick the root log level.

    ``LOG_LEVEL`` wins when set; otherwise the ``logging.level`` config value
    applies, falling back to INFO.
    """
    return (os.environ.get("LOG_LEVEL") or configured or "INFO").upper()


def setup_json_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with JSON structured output.

    Uses python-json-logger's JsonFormatter. The SensitiveDataFilter is
    attached to the handler so every logger's records are masked.
    The 'audit' logger is unaffected (propagate=False, own handler).
    """
    from pythonjsonlogger.json import JsonFormatter

    handler = logging.StreamHandler(sys.stderr)
    formatter = JsonFormatter(
        fmt="%(timestamp)s %(name)s %(levelname)s %(message)s",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
        timestamp=True,
    )
    handler.setFormatter(formatter)
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


# =============================================================================
# Business Metrics Collection
# =============================================================================

def collect_business_metrics(registry: SessionRegistry) -> None:
    """Update Gauges from the session registry."""
    ACTIVE_SESSIONS.set(len(registry))
