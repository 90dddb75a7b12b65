"""In-memory metrics collector with Prometheus export."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


PROM_REGISTRY = CollectorRegistry()
TOOL_COUNTER = Counter(
    "devops_gateway_tool_invocations_total",
    "Count of tool invocations",
    labelnames=("tool", "status"),
    registry=PROM_REGISTRY,
)
TOOL_LATENCY = Histogram(
    "devops_gateway_tool_latency_ms",
    "Latency of tool invocations in milliseconds",
    labelnames=("tool",),
    registry=PROM_REGISTRY,
    buckets=(10, 25, 50, 100, 250, 500, 1000, 2500, float("inf")),
)
EXCHANGE_COUNTER = Counter(
    "devops_gateway_token_exchanges_total",
    "Count of On-Behalf-Of token exchanges",
    labelnames=("status", "source"),
    registry=PROM_REGISTRY,
)


@dataclass
class GatewayMetrics:
    tool_invocations: int = 0
    tool_failures: int = 0
    tool_latency_ms: float = 0.0
    tool_breakdown: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    exchanges: int = 0
    exchange_failures: int = 0
    exchange_cache_hits: int = 0

    def __post_init__(self) -> None:
        self._lock = Lock()

    def record_tool_invocation(
        self,
        *,
        tool_name: str,
        latency_ms: float,
        success: bool,
        error_type: str | None = None,
    ) -> None:
        with self._lock:
            self.tool_invocations += 1
            if not success:
                self.tool_failures += 1
            self.tool_latency_ms += latency_ms
            stats = self.tool_breakdown.setdefault(
                tool_name,
                {"count": 0, "failures": 0, "latency_ms": 0.0, "errors": {}},
            )
            stats["count"] += 1
            stats["latency_ms"] += latency_ms
            if not success:
                stats["failures"] += 1
                if error_type:
                    stats["errors"][error_type] = stats["errors"].get(error_type, 0) + 1
        status = "success" if success else "failure"
        TOOL_COUNTER.labels(tool=tool_name, status=status).inc()
        TOOL_LATENCY.labels(tool=tool_name).observe(latency_ms)

    def record_exchange(self, *, success: bool, cached: bool) -> None:
        with self._lock:
            self.exchanges += 1
            if not success:
                self.exchange_failures += 1
            if cached:
                self.exchange_cache_hits += 1
        EXCHANGE_COUNTER.labels(
            status="success" if success else "failure",
            source="cache" if cached else "identity_provider",
        ).inc()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            avg_tool_latency = (
                self.tool_latency_ms / self.tool_invocations
                if self.tool_invocations
                else 0.0
            )
            return {
                "tool_invocations": self.tool_invocations,
                "tool_failures": self.tool_failures,
                "average_tool_latency_ms": round(avg_tool_latency, 3),
                "tool_breakdown": {
                    name: {**stats, "errors": dict(stats["errors"])}
                    for name, stats in self.tool_breakdown.items()
                },
                "token_exchanges": self.exchanges,
                "token_exchange_failures": self.exchange_failures,
                "token_cache_hits": self.exchange_cache_hits,
            }


metrics = GatewayMetrics()


def generate_prometheus_metrics() -> Tuple[bytes, str]:
    return generate_latest(PROM_REGISTRY), CONTENT_TYPE_LATEST
