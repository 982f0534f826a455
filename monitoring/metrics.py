"""
Metrics Collection - Monitoring Layer

Prometheus-compatible in-process metrics:
- Counters (monotonically increasing)
- Gauges (can go up or down)
- Histograms (distribution of values)

Exposed in text format at GET /metrics.

@.architecture
Incoming: core/cache/*.py, api/v1/endpoints/health.py --- {str metric_name, float value, label keyword arguments}
Processing: inc(), set(), observe(), collect_all(), export_prometheus() --- {4 jobs: metric_creation, recording, collection, export}
Outgoing: api/v1/endpoints/health.py --- {Counter/Gauge/Histogram instances, Dict[str, Any] collected metrics, str Prometheus format}
"""

import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MetricType(str, Enum):
    """Metric types following Prometheus conventions."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


class _LabelledMetric:
    """Shared label handling for all metric kinds."""

    metric_type: MetricType

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = labels or []
        self._lock = threading.Lock()

    def _label_key(self, labels: Dict[str, str]) -> Tuple[str, ...]:
        if set(labels.keys()) != set(self.label_names):
            raise ValueError(f"Expected labels {self.label_names}, got {list(labels.keys())}")
        return tuple(str(labels[name]) for name in self.label_names)

    def _label_dict(self, key: Tuple[str, ...]) -> Dict[str, str]:
        return dict(zip(self.label_names, key))


class Counter(_LabelledMetric):
    """Monotonically increasing value (operations, purged keys, ticks)."""

    metric_type = MetricType.COUNTER

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        super().__init__(name, help_text, labels)
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def inc(self, value: float = 1.0, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counter can only be incremented by non-negative values")
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, **labels: str) -> float:
        return self._values.get(self._label_key(labels), 0.0)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        with self._lock:
            return [(self._label_dict(key), value) for key, value in self._values.items()]


class Gauge(Counter):
    """Value that can go up or down (active scheduled tasks)."""

    metric_type = MetricType.GAUGE

    def set(self, value: float, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += value

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self.inc(-value, **labels)


class Histogram(_LabelledMetric):
    """Distribution of observed values in cumulative buckets."""

    metric_type = MetricType.HISTOGRAM

    # Store round trips and maintenance ticks, in seconds
    DEFAULT_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]

    def __init__(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ):
        super().__init__(name, help_text, labels)
        self.buckets = sorted(buckets or self.DEFAULT_BUCKETS)
        self._counts: Dict[Tuple[str, ...], List[int]] = {}
        self._sums: Dict[Tuple[str, ...], float] = defaultdict(float)
        self._totals: Dict[Tuple[str, ...], int] = defaultdict(int)

    def observe(self, value: float, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            counts = self._counts.setdefault(key, [0] * len(self.buckets))
            for index, bound in enumerate(self.buckets):
                if value <= bound:
                    counts[index] += 1
            self._sums[key] += value
            self._totals[key] += 1

    def get_stats(self, **labels: str) -> Dict[str, Any]:
        key = self._label_key(labels)
        with self._lock:
            return self._stats(key)

    def _stats(self, key: Tuple[str, ...]) -> Dict[str, Any]:
        counts = self._counts.get(key, [0] * len(self.buckets))
        total = self._totals.get(key, 0)
        return {
            'count': total,
            'sum': self._sums.get(key, 0.0),
            'avg': self._sums.get(key, 0.0) / total if total else 0.0,
            'buckets': dict(zip(self.buckets, counts)),
        }

    def collect(self) -> List[Tuple[Dict[str, str], Dict[str, Any]]]:
        with self._lock:
            return [(self._label_dict(key), self._stats(key)) for key in self._totals]


class MetricsRegistry:
    """Get-or-create registry for all metrics, with Prometheus export."""

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: Dict[str, _LabelledMetric] = {}

    def _get_or_create(self, cls: type, name: str, *args: Any) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = cls(name, *args)
                self._metrics[name] = metric
            elif not isinstance(metric, cls):
                raise ValueError(f"Metric '{name}' already registered as {metric.metric_type.value}")
            return metric

    def counter(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
        return self._get_or_create(Counter, name, help_text, labels)

    def gauge(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
        return self._get_or_create(Gauge, name, help_text, labels)

    def histogram(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ) -> Histogram:
        return self._get_or_create(Histogram, name, help_text, labels, buckets)

    def collect_all(self) -> Dict[str, Any]:
        """Collect every metric as ``{name: {type, help, values}}``."""
        return {
            name: {
                'type': metric.metric_type.value,
                'help': metric.help_text,
                'values': metric.collect(),
            }
            for name, metric in self._metrics.items()
        }

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus text exposition format."""
        lines = []
        for name, metric in self._metrics.items():
            lines.append(f"# HELP {name} {metric.help_text}")
            lines.append(f"# TYPE {name} {metric.metric_type.value}")

            if isinstance(metric, Histogram):
                for label_dict, stats in metric.collect():
                    for bound, count in stats['buckets'].items():
                        lines.append(f"{name}_bucket{self._format_labels(dict(label_dict, le=str(bound)))} {count}")
                    lines.append(f"{name}_bucket{self._format_labels(dict(label_dict, le='+Inf'))} {stats['count']}")
                    lines.append(f"{name}_sum{self._format_labels(label_dict)} {stats['sum']}")
                    lines.append(f"{name}_count{self._format_labels(label_dict)} {stats['count']}")
            else:
                for label_dict, value in metric.collect():
                    lines.append(f"{name}{self._format_labels(label_dict)} {value}")

        return '\n'.join(lines) + '\n'

    @staticmethod
    def _format_labels(labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        return "{" + ",".join(f'{k}="{v}"' for k, v in labels.items()) + "}"


_global_registry: Optional[MetricsRegistry] = None


def get_registry() -> MetricsRegistry:
    """Get the process-wide metrics registry."""
    global _global_registry
    if _global_registry is None:
        _global_registry = MetricsRegistry()
    return _global_registry


def setup_cache_metrics(registry: Optional[MetricsRegistry] = None) -> Dict[str, Any]:
    """
    Create (or fetch) the cache metrics.

    Args:
        registry: Registry to use; defaults to the global one

    Returns:
        Dict of metric objects keyed by short name
    """
    registry = registry or get_registry()

    return {
        'operations': registry.counter(
            'cache_operations_total',
            'Cache operations by kind and outcome',
            labels=['operation', 'result']
        ),
        'purged_keys': registry.counter(
            'cache_purged_keys_total',
            'Keys deleted by pattern purges'
        ),
        'maintenance_ticks': registry.counter(
            'cache_maintenance_ticks_total',
            'Scheduled maintenance ticks by outcome',
            labels=['status']
        ),
        'maintenance_duration': registry.histogram(
            'cache_maintenance_duration_seconds',
            'Duration of scheduled maintenance ticks in seconds'
        ),
        'scheduled_tasks': registry.gauge(
            'cache_scheduled_tasks_active',
            'Scheduled tasks currently running'
        ),
    }
