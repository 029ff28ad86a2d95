"""Data structures for scraped samples and per-series state."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

# Number of displayed values kept per series for graphing
HISTORY_SIZE = 30

LabelPairs = Tuple[Tuple[str, str], ...]
LabelInput = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class MetricKind(str, Enum):
    """Closed set of metric family types found in the exposition format."""
    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"
    SUMMARY = "summary"
    HISTOGRAM = "histogram"

    @property
    def is_counter(self) -> bool:
        return self is MetricKind.COUNTER


@dataclass(frozen=True)
class SeriesKey:
    """Structured series identity: metric name plus sorted label pairs."""
    name: str
    labels: LabelPairs = ()

    def __str__(self) -> str:
        if not self.labels:
            return self.name
        rendered = ",".join(f'{k}="{v}"' for k, v in self.labels)
        return f"{self.name}{{{rendered}}}"


def _label_items(labels: LabelInput) -> Iterable[Tuple[str, str]]:
    if isinstance(labels, Mapping):
        return labels.items()
    return labels


def derive_series_key(name: str, labels: LabelInput) -> Tuple[SeriesKey, str]:
    """
    Build the canonical key and display label string for a series.

    Labels are sorted by label name so the same label set in any order
    yields the same result.

    Returns:
        (SeriesKey, human-readable label string)
    """
    pairs: LabelPairs = tuple(sorted(_label_items(labels), key=lambda kv: kv[0]))
    label_str = " ".join(f'{k}="{v}"' for k, v in pairs)
    return SeriesKey(name, pairs), label_str


@dataclass(frozen=True)
class RawSample:
    """A single scraped value for one label combination."""
    name: str
    kind: MetricKind
    labels: Dict[str, str]
    value: float

    def series_key(self) -> Tuple[SeriesKey, str]:
        """Derive the key for this sample."""
        return derive_series_key(self.name, self.labels)


@dataclass(frozen=True)
class SeriesState:
    """Reconciled state of one series across scrapes."""
    key: SeriesKey
    name: str
    labels: str
    is_counter: bool

    # Counter bookkeeping
    prev_raw: float = 0.0
    accumulated: float = 0.0
    last_delta: float = 0.0

    # Gauge (and every other non-counter kind)
    current_value: float = 0.0

    last_scraped_raw: float = 0.0
    history: Tuple[float, ...] = field(default=())

    @property
    def display_value(self) -> float:
        """Value shown in the table's value column."""
        return self.last_scraped_raw if self.is_counter else self.current_value

    @property
    def history_value(self) -> float:
        """Value appended to the history on each update."""
        return self.accumulated if self.is_counter else self.current_value

    @property
    def title(self) -> str:
        """Graph caption in exposition style."""
        if not self.labels:
            return self.name
        return f"{self.name}{{{self.labels}}}"

    def delta(self) -> Optional[float]:
        """Increment since the previous scrape, None for non-counters."""
        return self.last_delta if self.is_counter else None

    def total(self) -> Optional[float]:
        """Running total since first sight, None for non-counters."""
        return self.accumulated if self.is_counter else None
