import logging
import sys
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from prometheus_client import REGISTRY, Counter, Histogram

# --- Context for Correlation IDs ---
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="system")

# --- Prometheus Metric Definitions ---
DURATION_METRIC = "exam_method_duration_seconds"
SELECTION_METRIC = "exam_question_selection"

METHOD_DURATION: Histogram
SELECTION_OUTCOMES: Counter


def _registered(name: str) -> Any:
    # Module reloads (pytest, dev servers) would otherwise register twice
    return REGISTRY._names_to_collectors[name]


try:
    METHOD_DURATION = Histogram(
        DURATION_METRIC, "Time spent in method", ["component", "method"]
    )
except ValueError:
    METHOD_DURATION = cast(Histogram, _registered(DURATION_METRIC))

try:
    SELECTION_OUTCOMES = Counter(
        SELECTION_METRIC, "Question selection calls by outcome", ["mode", "outcome"]
    )
except ValueError:
    SELECTION_OUTCOMES = cast(Counter, _registered(SELECTION_METRIC + "_total"))

P = ParamSpec("P")
R = TypeVar("R")


def measure_time(metric_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator for timing instance methods.
    Observes the Prometheus histogram and logs through the instance's
    `telemetry` attribute when it has one. Exceptions are logged and re-raised.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            self_obj: Any = args[0] if args else None
            component = self_obj.__class__.__name__ if self_obj else "Unknown"
            telemetry = getattr(self_obj, "telemetry", None)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start
                METHOD_DURATION.labels(
                    component=component, method=func.__name__
                ).observe(duration)
                if telemetry:
                    telemetry.log_error(
                        f"Failed: {metric_name}",
                        e,
                        duration_ms=round(duration * 1000, 2),
                    )
                raise

            duration = time.perf_counter() - start
            METHOD_DURATION.labels(component=component, method=func.__name__).observe(
                duration
            )
            if telemetry:
                telemetry.log_info(metric_name, duration_ms=round(duration * 1000, 2))
            return result

        return wrapper

    return decorator


class Telemetry:
    """
    Facade for component logging and metrics.
    Every message is prefixed with the current correlation id.
    """

    def __init__(self, component_name: str) -> None:
        self.component = component_name
        self.logger = logging.getLogger(component_name)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    @staticmethod
    def start_trace() -> str:
        c_id = str(uuid.uuid4())[:8]
        correlation_id_ctx.set(c_id)
        return c_id

    @staticmethod
    def get_trace_id() -> str:
        return correlation_id_ctx.get()

    @staticmethod
    def count_selection(mode: str, outcome: str) -> None:
        SELECTION_OUTCOMES.labels(mode=mode, outcome=outcome).inc()

    def log_info(self, event: str, **kwargs: Any) -> None:
        self.logger.info(f"[{self.get_trace_id()}] {event} | {kwargs}")

    def log_warning(self, event: str, **kwargs: Any) -> None:
        self.logger.warning(f"[{self.get_trace_id()}] {event} | {kwargs}")

    def log_error(self, event: str, error: Exception, **kwargs: Any) -> None:
        msg = f"[{self.get_trace_id()}] {event} | Error: {error} | {kwargs}"
        self.logger.error(msg, exc_info=True)
