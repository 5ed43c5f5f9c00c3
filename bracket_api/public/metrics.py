"""
Service counters exposed on /metrics through prometheus_client.

Each ServiceMetrics owns its CollectorRegistry, with the process, platform
and GC collectors registered alongside the service counters.

Counters (prometheus_client adds the _total sample suffix):
- <ns>_total_requests: one per /validate or /fix call
- <ns>_processed_ops: heartbeat ticked by a background task
- <ns>_operation_outcomes{operation, outcome}: per-result breakdown
"""
import asyncio
import logging
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from .settings import settings

logger = logging.getLogger(__name__)

CONTENT_TYPE = CONTENT_TYPE_LATEST


class ServiceMetrics:
    """Counters the service exposes on /metrics."""

    def __init__(self, namespace: str = "myapp", registry: Optional[CollectorRegistry] = None,
                 process_collectors: bool = True):
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()
        if process_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.requests_total = Counter(
            f"{namespace}_total_requests",
            "The total number requests",
            registry=self.registry,
        )
        self.processed_ops_total = Counter(
            f"{namespace}_processed_ops_total",
            "The total number of processed events",
            registry=self.registry,
        )
        self.operation_outcomes_total = Counter(
            f"{namespace}_operation_outcomes_total",
            "Results of validate/fix calls by operation and outcome",
            labelnames=("operation", "outcome"),
            registry=self.registry,
        )

    def record(self, operation: str, outcome: str) -> None:
        self.requests_total.inc()
        self.operation_outcomes_total.labels(operation=operation, outcome=outcome).inc()

    def sample(self, name: str, **labels: str) -> float:
        """Current value of an exposed sample, 0.0 when not yet observed."""
        value = self.registry.get_sample_value(name, labels or None)
        return value or 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)


async def run_heartbeat(counter: Counter, interval_seconds: float) -> None:
    """Tick counter every interval_seconds until cancelled."""
    logger.info("Metrics heartbeat started (interval=%ss)", interval_seconds)
    try:
        while True:
            counter.inc()
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("Metrics heartbeat stopped")
        raise


def start_heartbeat(service_metrics: ServiceMetrics, interval_seconds: float) -> Optional[asyncio.Task]:
    """Schedule the heartbeat on the running loop; no-op when interval <= 0."""
    if interval_seconds <= 0:
        return None
    return asyncio.get_running_loop().create_task(
        run_heartbeat(service_metrics.processed_ops_total, interval_seconds)
    )


metrics = ServiceMetrics(settings.metrics_namespace)
