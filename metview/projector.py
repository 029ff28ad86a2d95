"""Read-only projection of the view state into renderable rows."""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from metview.series import SeriesState
from metview.view import ViewState

NOT_APPLICABLE = "--"
CURSOR = ">"


@dataclass(frozen=True)
class DisplayRow:
    """One table row as the renderer shows it."""
    cursor: str
    key: str
    value: str
    delta: str
    total: str
    highlight: bool = False  # counter increased on the last scrape

    @property
    def key_cell(self) -> str:
        return f"{self.cursor} {self.key}"


@dataclass(frozen=True)
class GraphData:
    """History of the selected series for plotting."""
    title: str
    values: Tuple[float, ...]


def format_delta(delta: Optional[float]) -> str:
    """Render a signed increment, or the placeholder for non-counters."""
    if delta is None:
        return NOT_APPLICABLE
    if delta > 0:
        return f"+{delta:.2f}"
    if delta < 0:
        return f"{delta:.2f}"
    return "0.00"


def format_total(total: Optional[float]) -> str:
    if total is None:
        return NOT_APPLICABLE
    return f"{total:.2f}"


def project_row(state: SeriesState, selected: bool = False) -> DisplayRow:
    """Project a single series into a row."""
    delta = state.delta()
    return DisplayRow(
        cursor=CURSOR if selected else " ",
        key=str(state.key),
        value=f"{state.display_value:.2f}",
        delta=format_delta(delta),
        total=format_total(state.total()),
        highlight=delta is not None and delta > 0,
    )


def visible_rows(view: ViewState) -> List[DisplayRow]:
    """Rows of the currently visible page, cursor on the selected one."""
    return [
        project_row(view.series[i], selected=(i == view.selected))
        for i in range(view.page_start, view.page_end)
    ]


def all_rows(view: ViewState) -> List[DisplayRow]:
    """Rows for every tracked series regardless of the page window."""
    return [
        project_row(s, selected=(i == view.selected))
        for i, s in enumerate(view.series)
    ]


def selected_graph(view: ViewState) -> Optional[GraphData]:
    """History and caption for the selected series, if any."""
    series = view.selected_series
    if series is None:
        return None
    return GraphData(title=series.title, values=series.history)


def pagination(view: ViewState) -> Tuple[int, int, int]:
    """
    Summarize the visible window.

    Returns:
        (first row number, last row number, total series), 1-based,
        or (0, 0, 0) when nothing is tracked
    """
    total = len(view.series)
    if total == 0:
        return 0, 0, 0
    return view.page_start + 1, view.page_end, total
