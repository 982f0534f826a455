"""
Health Checks - Monitoring Layer

Provides health checks and diagnostics for:
- System resources (memory, disk, CPU via psutil)
- Registered components (the cache manager's Redis connection)

@.architecture
Incoming: app.py, api/v1/endpoints/health.py, scripts/monitor_cache.py --- {CacheManager, str component_name}
Processing: check_all(), check_component(), _check_system(), register_checker(), _aggregate_status() --- {4 jobs: aggregation, health_checking, resource_monitoring, registration}
Outgoing: api/v1/endpoints/health.py --- {Dict[str, Any] health status, HealthCheckResult, HealthStatus enum}
"""

import platform
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import psutil

from core.cache.errors import CacheError


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class HealthStatus(str, Enum):
    """Health check status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """
    Result of a health check.

    Attributes:
        component: Component name
        status: Health status
        message: Status message
        details: Additional details
        checked_at: Timestamp of check
        response_time_ms: Check execution time
    """
    component: str
    status: HealthStatus
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    checked_at: str = field(default_factory=_utc_now)
    response_time_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'component': self.component,
            'status': self.status.value,
            'message': self.message,
            'details': self.details,
            'response_time_ms': self.response_time_ms,
        }


class HealthChecker:
    """
    Aggregates system and component health.

    Components register an object exposing ``async check_health() -> dict``
    with at least a ``healthy`` flag.
    """

    def __init__(self):
        self._start_time = time.time()
        self._checkers: Dict[str, Any] = {}

    def register_checker(self, name: str, checker: Any) -> None:
        self._checkers[name] = checker

    def unregister_checker(self, name: str) -> None:
        self._checkers.pop(name, None)

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Aggregated health check results
        """
        start = time.time()
        results = [await self._check_system()]

        for name in list(self._checkers):
            results.append(await self._run_checker(name))

        overall_status = self._aggregate_status(results)

        return {
            'status': overall_status.value,
            'timestamp': _utc_now(),
            'uptime_seconds': self.get_uptime(),
            'check_duration_ms': (time.time() - start) * 1000,
            'components': [r.to_dict() for r in results],
        }

    async def check_component(self, component: str) -> Optional[HealthCheckResult]:
        """
        Check health of a specific component.

        Returns:
            HealthCheckResult or None if not registered
        """
        if component == "system":
            return await self._check_system()
        if component not in self._checkers:
            return None
        return await self._run_checker(component)

    async def _run_checker(self, name: str) -> HealthCheckResult:
        try:
            check_start = time.time()
            result = await self._checkers[name].check_health()
            check_time = (time.time() - check_start) * 1000
        except CacheError as e:
            return HealthCheckResult(
                component=name,
                status=HealthStatus.UNHEALTHY,
                message=f"Health check failed: {e}",
                details={'error': str(e)}
            )

        return HealthCheckResult(
            component=name,
            status=HealthStatus.HEALTHY if result.get('healthy', False) else HealthStatus.UNHEALTHY,
            message=result.get('message', 'Component check completed'),
            details=result,
            response_time_ms=check_time
        )

    async def _check_system(self) -> HealthCheckResult:
        """Check memory, disk and CPU usage."""
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
            cpu_percent = psutil.cpu_percent(interval=None)
        except (OSError, psutil.Error) as e:
            return HealthCheckResult(
                component="system",
                status=HealthStatus.UNKNOWN,
                message=f"Failed to check system: {e}",
                details={'error': str(e)}
            )

        status = HealthStatus.HEALTHY
        issues = []

        if memory.percent > 90:
            status = HealthStatus.DEGRADED
            issues.append(f"High memory usage: {memory.percent}%")

        if disk.percent > 90:
            status = HealthStatus.DEGRADED
            issues.append(f"High disk usage: {disk.percent}%")

        if cpu_percent > 90:
            status = HealthStatus.DEGRADED
            issues.append(f"High CPU usage: {cpu_percent}%")

        return HealthCheckResult(
            component="system",
            status=status,
            message="System resources healthy" if not issues else "; ".join(issues),
            details={
                'platform': platform.system(),
                'python_version': platform.python_version(),
                'cpu': {
                    'percent': cpu_percent,
                    'count': psutil.cpu_count()
                },
                'memory': {
                    'total_gb': round(memory.total / (1024**3), 2),
                    'available_gb': round(memory.available / (1024**3), 2),
                    'percent_used': memory.percent
                },
                'disk': {
                    'total_gb': round(disk.total / (1024**3), 2),
                    'free_gb': round(disk.free / (1024**3), 2),
                    'percent_used': disk.percent
                },
            }
        )

    def _aggregate_status(self, results: List[HealthCheckResult]) -> HealthStatus:
        """Unhealthy wins over degraded, degraded over healthy."""
        if not results:
            return HealthStatus.UNKNOWN

        statuses = [r.status for r in results]
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def get_uptime(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time


# Global health checker instance
_global_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    global _global_health_checker
    if _global_health_checker is None:
        _global_health_checker = HealthChecker()
    return _global_health_checker


def initialize_health_checks(cache_manager: Optional[Any] = None) -> HealthChecker:
    """
    Register component checkers on the global health checker.

    Args:
        cache_manager: CacheManager whose ``check_health`` pings Redis

    Returns:
        Configured HealthChecker
    """
    checker = get_health_checker()
    if cache_manager is not None:
        checker.register_checker('redis', cache_manager)
    return checker
