"""Self-monitoring metrics for the viewer, exposed by the control API."""
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class SelfMetrics:
    """Counters and gauges describing the scrape loop."""

    def __init__(self, registry=None, prefix="metview_"):
        if registry is None:
            # Custom registry so default process metrics are not mixed in
            registry = CollectorRegistry()
        self.registry = registry

        self.scrapes_total = Counter(
            f"{prefix}scrapes_total",
            "Total number of successful scrapes",
            registry=registry
        )

        self.scrape_errors_total = Counter(
            f"{prefix}scrape_errors_total",
            "Total number of failed scrapes",
            ["kind"],
            registry=registry
        )

        self.scrape_duration_seconds = Histogram(
            f"{prefix}scrape_duration_seconds",
            "Duration of each scrape in seconds",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.skipped_ticks_total = Counter(
            f"{prefix}skipped_ticks_total",
            "Ticks skipped because the previous scrape was still running",
            registry=registry
        )

        self.tracked_series = Gauge(
            f"{prefix}tracked_series",
            "Number of series currently shown",
            registry=registry
        )

    def record_scrape(self, duration: float):
        """Record a successful scrape."""
        self.scrapes_total.inc()
        self.scrape_duration_seconds.observe(duration)

    def record_scrape_error(self, kind: str, duration: float):
        """Record a failed scrape."""
        self.scrape_errors_total.labels(kind=kind).inc()
        self.scrape_duration_seconds.observe(duration)

    def record_skipped_tick(self):
        self.skipped_ticks_total.inc()

    def set_tracked_series(self, count: int):
        self.tracked_series.set(count)

    def render(self) -> bytes:
        """Text exposition of the self-metrics."""
        return generate_latest(self.registry)
