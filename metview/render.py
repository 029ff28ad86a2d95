"""Terminal rendering of the projected view with rich."""
from typing import List, Optional, Sequence
import math

import numpy as np
from rich import box
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from metview.projector import GraphData, pagination, selected_graph, visible_rows
from metview.view import ViewState

HELP_TEXT = "Press q or Ctrl+C to quit. Use ↑/↓ or j/k to select, PgUp/PgDn or p/n to page."

# Rows used by everything except the table body (title, borders, header, footer)
CHROME_LINES = 9


def _fmt_axis(value: float) -> str:
    return f"{value:.2f}"


def plot_lines(values: Sequence[float], height: int = 12, width: int = 70) -> List[str]:
    """
    Plot a series as ASCII lines, oldest value on the left.

    The series is resampled to at most `width` columns and scaled to
    `height` rows, with a value axis on the left.
    """
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        return []

    if data.size > width:
        positions = np.linspace(0, data.size - 1, width)
        data = np.interp(positions, np.arange(data.size), data)

    lo = float(np.min(data))
    hi = float(np.max(data))
    span = hi - lo
    if span == 0 or not math.isfinite(span):
        rows = np.full(data.size, height // 2, dtype=int)
    else:
        rows = np.rint((data - lo) / span * (height - 1)).astype(int)

    grid = [[" "] * data.size for _ in range(height)]
    for col, row in enumerate(rows):
        grid[row][col] = "•"
        if col > 0:
            prev = rows[col - 1]
            step = 1 if row > prev else -1
            for fill in range(prev + step, row, step):
                grid[fill][col] = "│"

    labels = [_fmt_axis(lo + span * r / (height - 1)) if height > 1 else _fmt_axis(lo)
              for r in range(height)]
    pad = max(len(label) for label in labels)

    lines = []
    for r in range(height - 1, -1, -1):
        lines.append(f"{labels[r]:>{pad}} ┤{''.join(grid[r])}")
    return lines


def render_graph(graph: Optional[GraphData], height: int = 12, width: int = 70) -> RenderableType:
    """Line plot of the selected series with its title as caption."""
    if graph is None:
        return Text("")
    if not graph.values:
        return Text("(no data)")

    lines = plot_lines(graph.values, height=height, width=width)
    text = Text("\n".join(lines))
    text.append("\n")
    text.append(graph.title.center(width), style="bold")
    return text


def render_table(view: ViewState) -> Table:
    """Table of the visible page."""
    table = Table(box=box.ASCII, show_lines=False, expand=False)
    table.add_column("Key", overflow="fold")
    table.add_column("Value", justify="left")
    table.add_column("Inc Diff", justify="left")
    table.add_column("Total Diff", justify="left")

    for row in visible_rows(view):
        delta = Text(row.delta, style="green" if row.highlight else "")
        # Text cells so label values are never read as rich markup
        table.add_row(Text(row.key_cell), Text(row.value), delta, Text(row.total))
    return table


def render_view(
    view: ViewState,
    endpoint: str,
    interval: float,
    show_graph: bool = False,
    graph_height: int = 12,
    graph_width: int = 70,
) -> RenderableType:
    """Compose the full screen."""
    header = Text(f"Prometheus metrics from {endpoint} (every {interval:g}s)")
    parts: List[RenderableType] = [header]

    if view.error:
        parts.append(Text(f"Error: {view.error}", style="bold red"))

    if not view.series:
        parts.append(Text("No metrics matched filters or still fetching..."))
        parts.append(Text(HELP_TEXT, style="dim"))
        return Group(*parts)

    parts.append(render_table(view))

    first, last, total = pagination(view)
    parts.append(Text(f"Showing {first}-{last} of {total}", style="dim"))

    if show_graph:
        parts.append(render_graph(selected_graph(view), height=graph_height, width=graph_width))

    parts.append(Text(HELP_TEXT, style="dim"))
    return Group(*parts)


def fit_page_size(terminal_lines: int, show_graph: bool, graph_height: int = 12) -> int:
    """Number of table rows that fit a terminal of the given height."""
    overhead = CHROME_LINES + (graph_height + 1 if show_graph else 0)
    return max(1, terminal_lines - overhead)
