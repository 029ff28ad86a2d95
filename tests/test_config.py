"""Tests for configuration loading and validation."""
import pytest

from metview.config import LabelFilter, load_config, parse_duration

ENDPOINT = "http://localhost:9090/metrics"


def test_defaults():
    config = load_config(overrides={"scrape": {"endpoint": ENDPOINT}})
    assert config.scrape.endpoint == ENDPOINT
    assert config.scrape.interval_s == 2.0
    assert config.scrape.timeout_s == 5.0
    assert config.filters.include == []
    assert config.filters.labels == []
    assert config.display.show_graph is False
    assert config.display.page_size is None
    assert config.api.enabled is False
    assert config.global_.log_level == "WARNING"


def test_missing_endpoint_is_fatal():
    with pytest.raises(ValueError, match="endpoint"):
        load_config()


@pytest.mark.parametrize("text,seconds", [
    ("2s", 2.0),
    ("500ms", 0.5),
    ("1m30s", 90.0),
    ("1h", 3600.0),
    ("1.5", 1.5),
    (3, 3.0),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == seconds


@pytest.mark.parametrize("text", ["", "fast", "2x", "s2", "2s junk"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_non_positive_interval_rejected():
    with pytest.raises(ValueError):
        load_config(overrides={"scrape": {"endpoint": ENDPOINT, "interval_s": "0s"}})


def test_label_filter_parse():
    lf = LabelFilter.parse("job=api")
    assert (lf.name, lf.value) == ("job", "api")
    assert str(lf) == "job=api"

    # Only the first '=' separates name from value
    lf = LabelFilter.parse("query=a=b")
    assert (lf.name, lf.value) == ("query", "a=b")

    lf = LabelFilter.parse("job=")
    assert lf.value == ""


@pytest.mark.parametrize("text", ["job", "=api", ""])
def test_bad_label_filter_rejected(text):
    with pytest.raises(ValueError):
        LabelFilter.parse(text)


def test_bad_label_filter_fails_config():
    with pytest.raises(ValueError, match="name=value"):
        load_config(overrides={
            "scrape": {"endpoint": ENDPOINT},
            "filters": {"labels": ["job"]},
        })


def test_yaml_file(tmp_path):
    path = tmp_path / "metview.yaml"
    path.write_text(
        "scrape:\n"
        f"  endpoint: {ENDPOINT}\n"
        "  interval_s: 500ms\n"
        "filters:\n"
        "  include: [http_]\n"
        "  labels: [job=api]\n"
        "display:\n"
        "  show_graph: true\n"
        "  page_size: 15\n"
        "global:\n"
        "  log_level: DEBUG\n"
    )
    config = load_config(str(path))
    assert config.scrape.interval_s == 0.5
    assert config.filters.include == ["http_"]
    assert config.filters.labels == [LabelFilter(name="job", value="api")]
    assert config.display.show_graph is True
    assert config.display.page_size == 15
    assert config.global_.log_level == "DEBUG"


def test_label_mapping_in_yaml(tmp_path):
    path = tmp_path / "metview.yaml"
    path.write_text(
        "scrape:\n"
        f"  endpoint: {ENDPOINT}\n"
        "filters:\n"
        "  labels:\n"
        "    job: api\n"
    )
    config = load_config(str(path))
    assert config.filters.labels == [LabelFilter(name="job", value="api")]


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/metview.yaml")


def test_layering_env_then_overrides(monkeypatch, tmp_path):
    path = tmp_path / "metview.yaml"
    path.write_text("scrape:\n  endpoint: http://file/metrics\n  interval_s: 10s\n")

    monkeypatch.setenv("MET_ENDPOINT", "http://env/metrics")
    monkeypatch.setenv("MET_INTERVAL", "3s")
    monkeypatch.setenv("LOG_LEVEL", "INFO")

    config = load_config(str(path))
    assert config.scrape.endpoint == "http://env/metrics"
    assert config.scrape.interval_s == 3.0
    assert config.global_.log_level == "INFO"

    config = load_config(str(path), {"scrape": {"endpoint": "http://cli/metrics", "interval_s": None}})
    assert config.scrape.endpoint == "http://cli/metrics"
    assert config.scrape.interval_s == 3.0
