"""
Monitoring & Observability Layer

Provides monitoring for the cache service:
- Structured logging (JSON formatting, request context injection)
- Metrics collection (Prometheus-compatible counters, gauges, histograms)
- Health checks (system resources, Redis connection)
"""

# Logging
from .logging import (
    JSONFormatter,
    TextFormatter,
    ContextFilter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_request_context,
    clear_request_context,
    get_request_id,
    LOGGING_PRESETS,
)

# Metrics
from .metrics import (
    MetricType,
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    get_registry,
    setup_cache_metrics,
)

__all__ = [
    # Logging
    'JSONFormatter',
    'TextFormatter',
    'ContextFilter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_request_context',
    'clear_request_context',
    'get_request_id',
    'LOGGING_PRESETS',

    # Metrics
    'MetricType',
    'Counter',
    'Gauge',
    'Histogram',
    'MetricsRegistry',
    'get_registry',
    'setup_cache_metrics',
]
