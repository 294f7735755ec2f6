# backend/lingualink/services/base.py
"""
Base Service Pattern for the LinguaLink lifecycle engine.

Provides common functionality for the engine's service classes:
- Settings injection (module settings by default, overridable in tests)
- Per-class logging
- Performance monitoring via @measure_operation and Prometheus
"""

from functools import wraps
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

from ..core.config import Settings, settings as default_settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """
    Base class for lifecycle engine services.

    Services are stateless apart from their injected collaborators, so a
    single instance may be shared across threads.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("apply_transition")
            def apply_transition(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                success = False
                error_type: Optional[str] = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - start_time
                    if elapsed > SLOW_OPERATION_SECONDS:
                        logger.warning(
                            "Slow operation detected: %s took %.2fs", operation_name, elapsed
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator
