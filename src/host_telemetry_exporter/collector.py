"""Prometheus collector implementation using composition pattern.

Provides a reusable collector that separates concerns between reading host
state, metric generation, and failure isolation through dependency
injection.
"""

import time
from collections.abc import Callable, Iterator
from typing import Generic, TypeAlias, TypeVar

import structlog
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from .hostfs import SourceUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


Fetcher: TypeAlias = Callable[[], list[T]]
MetricsGenerator: TypeAlias = Callable[[list[T]], Iterator[Metric]]


class HostCollector(Collector, Generic[T]):
    """Prometheus collector for host telemetry using composition pattern.

    Separates concerns through dependency injection:
    - Reading host state (via Fetcher function with injected configuration)
    - Metric generation (via MetricsGenerator function)
    - Timing and failure isolation (managed internally)

    A failing fetcher never propagates out of ``collect()``: the collector
    reports ``scrape_success`` 0 and omits its domain metrics for that
    scrape, so the other collectors in the registry are still exported.
    The collector keeps no state between scrapes.
    """

    def __init__(
        self,
        fetcher: Fetcher[T],
        generator: MetricsGenerator[T],
        subsystem: str,
        namespace: str = "node",
    ):
        """Initialize the host collector.

        Args:
            fetcher: Function that reads and transforms host state (with
                configuration pre-injected).
            generator: Function that generates Prometheus metrics from data.
            subsystem: Collector subsystem name (e.g., "oom", "filehandles").
            namespace: Metric namespace prefix.
        """
        self._fetcher = fetcher
        self._generator = generator
        self._subsystem = subsystem
        self._namespace = namespace

    @property
    def subsystem(self) -> str:
        return self._subsystem

    def collect(self) -> Iterator[Metric]:
        """Collect metrics for Prometheus scrape.

        Called by Prometheus client during each scrape. Yields scrape metadata
        (duration and success) followed by domain-specific metrics from the
        configured generator function.

        Yields:
            Prometheus Metric objects (metadata + domain metrics).
        """
        # Fetch and generate both run under the error handler
        metrics: list[Metric] | None = None
        start = time.perf_counter()
        try:
            metrics = list(self._generator(self._fetcher()))
        except SourceUnavailableError as e:
            logger.error(
                "Collector source unavailable",
                collector=self._subsystem,
                error=str(e),
            )
        except Exception:
            logger.exception(
                "Failed to collect metrics",
                collector=self._subsystem,
            )
        duration = time.perf_counter() - start

        scrape_duration = GaugeMetricFamily(
            f"{self._namespace}_{self._subsystem}_scrape_duration_seconds",
            f"{self._subsystem} collector: duration of the scrape in seconds",
        )
        scrape_duration.add_metric([], duration)
        yield scrape_duration

        scrape_success = GaugeMetricFamily(
            f"{self._namespace}_{self._subsystem}_scrape_success",
            f"{self._subsystem} collector: whether the scrape succeeded",
        )
        scrape_success.add_metric([], 1.0 if metrics is not None else 0.0)
        yield scrape_success

        # Domain metrics are omitted on error
        if metrics is not None:
            yield from metrics
