"""Name and label filters for scraped series."""
from dataclasses import dataclass
from typing import Mapping, Tuple

from metview.config import FilterConfig


@dataclass(frozen=True)
class MetricFilter:
    """
    Predicate over a series identity.

    Include substrings are ORed, any exclude substring rejects (exclude
    wins over include), and label constraints are ANDed.
    """
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    labels: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_config(cls, config: FilterConfig) -> "MetricFilter":
        """Build a filter from validated configuration."""
        return cls(
            includes=tuple(config.include),
            excludes=tuple(config.exclude),
            labels=tuple((lf.name, lf.value) for lf in config.labels),
        )

    @property
    def active(self) -> bool:
        return bool(self.includes or self.excludes or self.labels)

    def passes_name(self, name: str) -> bool:
        """Check the metric name against include/exclude substrings."""
        if self.includes and not any(inc in name for inc in self.includes):
            return False
        return not any(exc in name for exc in self.excludes)

    def passes_labels(self, labels: Mapping[str, str]) -> bool:
        """Check that every required label is present with the exact value."""
        for label_name, label_value in self.labels:
            if label_name not in labels or labels[label_name] != label_value:
                return False
        return True

    def passes(self, name: str, labels: Mapping[str, str]) -> bool:
        """Return True if the series should be shown."""
        return self.passes_name(name) and self.passes_labels(labels)
