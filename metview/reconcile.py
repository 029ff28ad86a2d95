"""Reconciliation of scraped samples against previously observed series."""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from metview.filters import MetricFilter
from metview.series import HISTORY_SIZE, RawSample, SeriesKey, SeriesState

logger = logging.getLogger(__name__)

SeriesIndex = Dict[SeriesKey, int]


def _append_history(history: Tuple[float, ...], value: float) -> Tuple[float, ...]:
    """Append a value, dropping the oldest entries beyond HISTORY_SIZE."""
    history = history + (value,)
    if len(history) > HISTORY_SIZE:
        history = history[-HISTORY_SIZE:]
    return history


def _new_series(sample: RawSample) -> SeriesState:
    """Seed state on first sight so the first visible increment is zero."""
    key, label_str = sample.series_key()
    raw = sample.value

    if sample.kind.is_counter:
        return SeriesState(
            key=key,
            name=sample.name,
            labels=label_str,
            is_counter=True,
            prev_raw=raw,
            last_scraped_raw=raw,
        )

    return SeriesState(
        key=key,
        name=sample.name,
        labels=label_str,
        is_counter=False,
        current_value=raw,
        last_scraped_raw=raw,
    )


def _update_counter(state: SeriesState, raw: float) -> SeriesState:
    """Apply one raw counter reading, treating a decrease as a reset."""
    diff = raw - state.prev_raw
    accumulated = state.accumulated

    if diff > 0:
        accumulated += diff
        last_delta = diff
    elif diff < 0:
        # Counter restarted: everything counted since the reset is new
        logger.debug(f"Counter reset for {state.key}: {state.prev_raw} -> {raw}")
        accumulated += raw
        last_delta = raw
    else:
        last_delta = 0.0

    return replace(
        state,
        prev_raw=raw,
        accumulated=accumulated,
        last_delta=last_delta,
        last_scraped_raw=raw,
    )


def reconcile_sample(existing: Optional[SeriesState], sample: RawSample) -> SeriesState:
    """
    Produce the updated state of one series for a new sample.

    Args:
        existing: Current state, or None if the series is new
        sample: Newly scraped sample for the same series key

    Returns:
        New SeriesState with the history extended by one value
    """
    if existing is None:
        state = _new_series(sample)
    elif existing.is_counter:
        state = _update_counter(existing, sample.value)
    else:
        state = replace(existing, current_value=sample.value, last_scraped_raw=sample.value)

    return replace(state, history=_append_history(state.history, state.history_value))


def collect_stale(
    series: Iterable[SeriesState],
    seen: Set[SeriesKey],
) -> Tuple[Tuple[SeriesState, ...], SeriesIndex]:
    """
    Drop series that were not touched in the latest batch.

    Relative order of the surviving series is preserved and a fresh
    key -> position index is built alongside.
    """
    kept: List[SeriesState] = []
    index: SeriesIndex = {}
    for state in series:
        if state.key in seen:
            index[state.key] = len(kept)
            kept.append(state)
    return tuple(kept), index


def reconcile_batch(
    series: Iterable[SeriesState],
    index: SeriesIndex,
    samples: Iterable[RawSample],
    metric_filter: MetricFilter,
) -> Tuple[Tuple[SeriesState, ...], SeriesIndex]:
    """
    Reconcile a full scrape against the current series table.

    Samples rejected by the filter are ignored; new series are appended
    in the order they are first seen; series absent from this batch are
    collected.

    Returns:
        (series, index) after reconciliation and staleness collection
    """
    working = list(series)
    positions = dict(index)
    seen: Set[SeriesKey] = set()
    created = 0

    for sample in samples:
        if not metric_filter.passes(sample.name, sample.labels):
            continue

        key, _ = sample.series_key()
        pos = positions.get(key)
        if pos is None:
            working.append(reconcile_sample(None, sample))
            positions[key] = len(working) - 1
            created += 1
        else:
            working[pos] = reconcile_sample(working[pos], sample)
        seen.add(key)

    kept, new_index = collect_stale(working, seen)

    dropped = len(working) - len(kept)
    if created or dropped:
        logger.debug(f"Reconciled batch: {created} new, {dropped} stale, {len(kept)} tracked")

    return kept, new_index
