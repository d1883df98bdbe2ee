from __future__ import annotations

from typing import Any

from prometheus_client import Counter

from stock_engine.core.config import settings


class _NoOpMetric:
    def labels(self, *args: Any, **kwargs: Any) -> "_NoOpMetric":
        return self

    def inc(self, *_: Any, **__: Any) -> None:
        return None


def _metric_or_noop(metric_factory: Any) -> Any:
    if not settings.METRICS_ENABLED:
        return _NoOpMetric()
    return metric_factory()


STOCK_ADJUSTMENTS = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_stock_adjustments_total",
        "Stock adjustments partitioned by operation and outcome.",
        ["operation", "outcome"],
    )
)

STOCK_FALLBACKS = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_stock_fallbacks_total",
        "Non-exact color/size resolutions partitioned by fallback kind.",
        ["kind"],
    )
)


def record_adjustment(operation: str, outcome: str) -> None:
    STOCK_ADJUSTMENTS.labels(operation=operation, outcome=outcome).inc()


def record_fallback(kind: str) -> None:
    STOCK_FALLBACKS.labels(kind=kind).inc()
