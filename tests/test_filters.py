"""Tests for name and label filtering."""
from metview.config import FilterConfig
from metview.filters import MetricFilter


def test_no_filters_pass_everything():
    f = MetricFilter()
    assert not f.active
    assert f.passes("anything", {})
    assert f.passes("up", {"job": "api"})


def test_exclude_wins_over_include():
    f = MetricFilter(includes=("foo",), excludes=("bar",))
    assert not f.passes("foobar", {})
    assert f.passes("foo", {})


def test_exclude_only():
    f = MetricFilter(excludes=("bar",))
    assert f.passes("baz", {})
    assert not f.passes("rebar", {})


def test_includes_are_ored():
    f = MetricFilter(includes=("http_", "grpc_"))
    assert f.passes("http_requests_total", {})
    assert f.passes("grpc_calls_total", {})
    assert not f.passes("process_cpu_seconds_total", {})


def test_label_constraints_are_anded():
    f = MetricFilter(labels=(("job", "api"), ("env", "prod")))
    assert f.passes("up", {"job": "api", "env": "prod", "extra": "x"})
    assert not f.passes("up", {"job": "api"})
    assert not f.passes("up", {"job": "api", "env": "dev"})


def test_label_value_must_match_exactly():
    f = MetricFilter(labels=(("job", "api"),))
    assert not f.passes("up", {"job": "api-2"})
    assert not f.passes("up", {"jobs": "api"})


def test_empty_label_value_requires_presence():
    f = MetricFilter(labels=(("job", ""),))
    assert f.passes("up", {"job": ""})
    assert not f.passes("up", {})


def test_from_config():
    config = FilterConfig(include=["foo"], exclude=["bar"], labels=["job=api"])
    f = MetricFilter.from_config(config)
    assert f.includes == ("foo",)
    assert f.excludes == ("bar",)
    assert f.labels == (("job", "api"),)
    assert f.active


def test_default_config_is_inactive():
    f = MetricFilter.from_config(FilterConfig())
    assert not f.active
    assert f.passes("anything", {"job": "api"})
