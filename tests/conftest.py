"""Shared helpers for building raw samples."""
import pytest

from metview.series import MetricKind, RawSample


def counter(name, value, **labels):
    """Counter sample."""
    return RawSample(name, MetricKind.COUNTER, dict(labels), float(value))


def gauge(name, value, **labels):
    """Gauge sample."""
    return RawSample(name, MetricKind.GAUGE, dict(labels), float(value))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration tests independent of the caller's environment."""
    for var in ("MET_ENDPOINT", "MET_INTERVAL", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
