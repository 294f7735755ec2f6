"""
Prometheus metrics for the LinguaLink lifecycle engine.

Service operation timings come from the @measure_operation decorator on
BaseService; lifecycle-specific counters are recorded directly by the
state machine, conflict resolver and interpreter lock.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with a host application's default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "lingualink_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

service_operations_total = Counter(
    "lingualink_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "lingualink_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

session_transitions_total = Counter(
    "lingualink_session_transitions_total",
    "Applied lifecycle transitions",
    ["entity", "from_status", "to_status"],
    registry=REGISTRY,
)

scheduling_conflicts_total = Counter(
    "lingualink_scheduling_conflicts_total",
    "Conflict checks that found an overlapping committed session",
    registry=REGISTRY,
)

interpreter_lock_total = Counter(
    "lingualink_interpreter_lock_total",
    "Interpreter scheduling lock operations",
    ["action", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level metric families."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SessionLifecycleService')
            operation: Operation name (e.g., 'apply_transition')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_transition(entity: str, from_status: str, to_status: str) -> None:
        session_transitions_total.labels(
            entity=entity, from_status=from_status, to_status=to_status
        ).inc()

    @staticmethod
    def record_scheduling_conflict() -> None:
        scheduling_conflicts_total.inc()

    @staticmethod
    def record_interpreter_lock(action: str, outcome: str) -> None:
        interpreter_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
