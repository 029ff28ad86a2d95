"""Interactive terminal viewer for Prometheus metrics."""

__version__ = "0.1.0"
