"""View state, selection/pagination rules and the update reducer."""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from metview.filters import MetricFilter
from metview.reconcile import reconcile_batch
from metview.series import RawSample, SeriesKey, SeriesState

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class ViewState:
    """Everything the display needs, threaded through `reduce`."""
    series: Tuple[SeriesState, ...] = ()
    index: Dict[SeriesKey, int] = field(default_factory=dict)
    initialized: bool = False
    selected: int = 0
    page_start: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    metric_filter: MetricFilter = field(default_factory=MetricFilter)
    error: Optional[str] = None
    scrapes: int = 0
    quit: bool = False

    @property
    def selected_series(self) -> Optional[SeriesState]:
        if 0 <= self.selected < len(self.series):
            return self.series[self.selected]
        return None

    @property
    def page_end(self) -> int:
        """Exclusive end of the visible window."""
        return min(self.page_start + self.page_size, len(self.series))


class NavAction(str, Enum):
    """Keyboard navigation requests."""
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    QUIT = "quit"


@dataclass(frozen=True)
class ScrapeSucceeded:
    samples: Tuple[RawSample, ...]


@dataclass(frozen=True)
class ScrapeFailed:
    error: str


@dataclass(frozen=True)
class Navigate:
    action: NavAction


@dataclass(frozen=True)
class Resize:
    page_size: int


Message = Union[ScrapeSucceeded, ScrapeFailed, Navigate, Resize]


def clamp_selection(state: ViewState) -> ViewState:
    """Keep the selected index inside [0, len-1] (0 for an empty list)."""
    last = len(state.series) - 1
    selected = min(max(state.selected, 0), max(last, 0))
    if selected == state.selected:
        return state
    return replace(state, selected=selected)


def ensure_visible(state: ViewState) -> ViewState:
    """
    Slide the page window the minimal amount needed to show the selection.

    The window start is first clamped to [0, max(0, len - page_size)].
    """
    max_start = max(0, len(state.series) - state.page_size)
    start = min(max(state.page_start, 0), max_start)

    if state.selected < start:
        start = state.selected
    elif state.selected >= start + state.page_size:
        start = state.selected - state.page_size + 1

    start = min(max(start, 0), max_start)
    if start == state.page_start:
        return state
    return replace(state, page_start=start)


def revalidate(state: ViewState) -> ViewState:
    """Restore selection and pagination invariants after the list changes."""
    return ensure_visible(clamp_selection(state))


def move_selection(state: ViewState, delta: int) -> ViewState:
    """Move the selection by delta rows, clamped to the list."""
    if not state.series:
        return state
    return revalidate(replace(state, selected=state.selected + delta))


def page(state: ViewState, direction: int) -> ViewState:
    """
    Move the window by a full page in the given direction (+1 / -1).

    The selection snaps to the nearest in-window row if the new window
    no longer contains it.
    """
    count = len(state.series)
    if count == 0:
        return state

    max_start = max(0, count - state.page_size)
    start = min(max(state.page_start + direction * state.page_size, 0), max_start)
    last_visible = min(start + state.page_size, count) - 1

    selected = state.selected
    if selected < start:
        selected = start
    elif selected > last_visible:
        selected = last_visible

    return replace(state, page_start=start, selected=selected)


def resize(state: ViewState, page_size: int) -> ViewState:
    """Change the number of visible rows."""
    page_size = max(1, page_size)
    if page_size == state.page_size:
        return state
    return revalidate(replace(state, page_size=page_size))


def _stable_sort(series: Tuple[SeriesState, ...]) -> Tuple[Tuple[SeriesState, ...], Dict[SeriesKey, int]]:
    ordered = tuple(sorted(series, key=lambda s: (s.name, s.labels)))
    return ordered, {s.key: i for i, s in enumerate(ordered)}


def apply_batch(state: ViewState, samples: Tuple[RawSample, ...]) -> ViewState:
    """Fold one successful scrape into the view."""
    series, index = reconcile_batch(state.series, state.index, samples, state.metric_filter)

    initialized = state.initialized
    if not initialized:
        # Sorted once; later series are appended so rows don't jump around
        series, index = _stable_sort(series)
        initialized = True

    new_state = replace(
        state,
        series=series,
        index=index,
        initialized=initialized,
        error=None,
        scrapes=state.scrapes + 1,
    )
    return revalidate(new_state)


def reduce(state: ViewState, message: Message) -> ViewState:
    """Pure state transition for one message from the event loop."""
    if isinstance(message, ScrapeSucceeded):
        return apply_batch(state, message.samples)

    if isinstance(message, ScrapeFailed):
        # Keep the last good data on screen
        return replace(state, error=message.error)

    if isinstance(message, Resize):
        return resize(state, message.page_size)

    if isinstance(message, Navigate):
        action = message.action
        if action is NavAction.UP:
            return move_selection(state, -1)
        if action is NavAction.DOWN:
            return move_selection(state, 1)
        if action is NavAction.PAGE_UP:
            return page(state, -1)
        if action is NavAction.PAGE_DOWN:
            return page(state, 1)
        if action is NavAction.QUIT:
            return replace(state, quit=True)

    logger.warning(f"Ignoring unknown message: {message!r}")
    return state
