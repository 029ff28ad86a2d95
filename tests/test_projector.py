"""Tests for the projection of view state into rows and graph data."""
from conftest import counter, gauge

from metview.projector import (
    NOT_APPLICABLE,
    all_rows,
    format_delta,
    pagination,
    selected_graph,
    visible_rows,
)
from metview.view import NavAction, Navigate, ScrapeSucceeded, ViewState, reduce


def scrape(state, *samples):
    return reduce(state, ScrapeSucceeded(tuple(samples)))


def test_counter_row_after_two_ticks():
    state = scrape(ViewState(), counter("requests_total", 100, path="a"))
    state = scrape(state, counter("requests_total", 130, path="a"))

    [row] = visible_rows(state)
    assert row.cursor == ">"
    assert row.key == 'requests_total{path="a"}'
    assert row.key_cell == '> requests_total{path="a"}'
    assert row.value == "130.00"
    assert row.delta == "+30.00"
    assert row.total == "30.00"
    assert row.highlight


def test_gauge_row_has_placeholders():
    state = scrape(ViewState(), gauge("temperature", 21.5, room="kitchen"))
    [row] = visible_rows(state)
    assert row.value == "21.50"
    assert row.delta == NOT_APPLICABLE
    assert row.total == NOT_APPLICABLE
    assert not row.highlight


def test_first_counter_row_shows_zero_delta():
    state = scrape(ViewState(), counter("jobs_total", 7))
    [row] = visible_rows(state)
    assert row.delta == "0.00"
    assert row.total == "0.00"
    assert row.value == "7.00"


def test_format_delta():
    assert format_delta(None) == NOT_APPLICABLE
    assert format_delta(1.5) == "+1.50"
    assert format_delta(-2) == "-2.00"
    assert format_delta(0.0) == "0.00"


def test_visible_rows_follow_window():
    state = ViewState(page_size=2)
    state = scrape(state, *[gauge(f"m{i}", i) for i in range(5)])
    for _ in range(4):
        state = reduce(state, Navigate(NavAction.DOWN))

    rows = visible_rows(state)
    assert [r.key for r in rows] == ["m3", "m4"]
    assert [r.cursor for r in rows] == [" ", ">"]
    assert len(all_rows(state)) == 5


def test_pagination_summary():
    state = ViewState(page_size=2)
    assert pagination(state) == (0, 0, 0)

    state = scrape(state, *[gauge(f"m{i}", i) for i in range(5)])
    assert pagination(state) == (1, 2, 5)

    for _ in range(4):
        state = reduce(state, Navigate(NavAction.DOWN))
    assert pagination(state) == (4, 5, 5)


def test_selected_graph():
    state = ViewState()
    assert selected_graph(state) is None

    for raw in (10, 15, 4):
        state = scrape(state, counter("c_total", raw, job="api"))

    graph = selected_graph(state)
    assert graph.title == 'c_total{job="api"}'
    assert graph.values == (0, 5, 9)


def test_graph_title_without_labels():
    state = scrape(ViewState(), gauge("up", 1))
    assert selected_graph(state).title == "up"


def test_projection_does_not_mutate_state():
    state = scrape(ViewState(), gauge("up", 1), gauge("down", 0))
    before = (state.series, state.selected, state.page_start)
    visible_rows(state)
    selected_graph(state)
    pagination(state)
    assert (state.series, state.selected, state.page_start) == before
