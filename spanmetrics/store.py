"""Thread-safe storage of observed metrics and their metadata."""

from __future__ import annotations

import bisect
import copy
import math
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from spanmetrics.display import Unit
from spanmetrics.labels import Key, Label

LabelsInput = Union[Mapping[str, str], Iterable[tuple[str, str]], Iterable[Label]]
MetricData = Union[int, float, "Summary"]


class MetricKind(Enum):
    """The kind of a metric; the declaration order is the sort order."""

    Counter = 0
    Gauge = 1
    Histogram = 2


@dataclass(frozen=True)
class CompositeKey:
    """A metric key qualified by its kind."""

    kind: MetricKind
    key: Key

    def _sort_key(self) -> tuple:
        return (
            self.kind.value,
            self.key.name,
            tuple((label.key, label.value) for label in self.key.labels),
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CompositeKey):
            return NotImplemented
        return self._sort_key() < other._sort_key()


@dataclass(frozen=True)
class ClientState:
    """Whether the observer is connected, with an optional reason when it is not."""

    connected: bool = False
    message: str | None = None


@dataclass
class Summary:
    """A distribution of recorded values answering min, max and quantile queries."""

    _values: list[float] = field(default_factory=list, repr=False)

    def add(self, value: float) -> None:
        value = float(value)
        if math.isnan(value):
            raise ValueError("cannot record NaN in a summary")
        bisect.insort(self._values, value)

    def min(self) -> float:
        """The smallest value, or positive infinity when empty."""
        return self._values[0] if self._values else math.inf

    def max(self) -> float:
        """The largest value, or negative infinity when empty."""
        return self._values[-1] if self._values else -math.inf

    def quantile(self, q: float) -> float | None:
        """The value at quantile ``q``, or None when empty or ``q`` is outside [0, 1]."""
        if not self._values or q < 0.0 or q > 1.0:
            return None
        if q == 0.0:
            return self.min()
        if q == 1.0:
            return self.max()
        rank = math.floor(q * (len(self._values) - 1))
        return self._values[rank]

    def count(self) -> int:
        return len(self._values)

    def __len__(self) -> int:
        return len(self._values)


def _make_key(name: str, labels: LabelsInput | None) -> Key:
    if labels is None:
        pairs: list[tuple[str, str]] = []
    elif isinstance(labels, Mapping):
        pairs = [(str(k), str(v)) for k, v in labels.items()]
    else:
        pairs = [
            (item.key, item.value) if isinstance(item, Label) else (str(item[0]), str(item[1]))
            for item in labels
        ]
    pairs.sort(key=lambda pair: pair[0])
    return Key(name, tuple(Label(k, v) for k, v in pairs))


def _check_unsigned(value: int) -> int:
    value = int(value)
    if value < 0:
        raise ValueError(f"counter value must not be negative: {value}")
    return value


class MetricStore:
    """Accumulates metric updates keyed by kind, name and labels."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._metrics: dict[CompositeKey, MetricData] = {}
        self._metadata: dict[tuple[MetricKind, str], tuple[Unit | None, str | None]] = {}
        self.state = ClientState()

    def describe(
        self,
        kind: MetricKind,
        name: str,
        unit: Unit | str | None,
        description: str | None,
    ) -> None:
        """Set the unit and description for all metrics of ``kind`` named ``name``."""
        if isinstance(unit, str):
            unit = Unit.from_string(unit)
        with self._lock:
            self._metadata[(kind, name)] = (unit, description)

    def _entry(self, kind: MetricKind, name: str, labels: LabelsInput | None, default):
        key = CompositeKey(kind, _make_key(name, labels))
        if key not in self._metrics:
            self._metrics[key] = default()
        return key

    def increment_counter(self, name: str, labels: LabelsInput | None, value: int) -> None:
        value = _check_unsigned(value)
        with self._lock:
            key = self._entry(MetricKind.Counter, name, labels, int)
            self._metrics[key] += value

    def set_counter(self, name: str, labels: LabelsInput | None, value: int) -> None:
        value = _check_unsigned(value)
        with self._lock:
            key = self._entry(MetricKind.Counter, name, labels, int)
            self._metrics[key] = value

    def increment_gauge(self, name: str, labels: LabelsInput | None, value: float) -> None:
        with self._lock:
            key = self._entry(MetricKind.Gauge, name, labels, float)
            self._metrics[key] += float(value)

    def decrement_gauge(self, name: str, labels: LabelsInput | None, value: float) -> None:
        with self._lock:
            key = self._entry(MetricKind.Gauge, name, labels, float)
            self._metrics[key] -= float(value)

    def set_gauge(self, name: str, labels: LabelsInput | None, value: float) -> None:
        with self._lock:
            key = self._entry(MetricKind.Gauge, name, labels, float)
            self._metrics[key] = float(value)

    def record_histogram(self, name: str, labels: LabelsInput | None, value: float) -> None:
        with self._lock:
            key = self._entry(MetricKind.Histogram, name, labels, Summary)
            self._metrics[key].add(value)

    def get_metrics(
        self,
    ) -> list[tuple[CompositeKey, MetricData, Unit | None, str | None]]:
        """A sorted snapshot of every metric with its unit and description."""
        with self._lock:
            result = []
            for key in sorted(self._metrics):
                unit, description = self._metadata.get((key.kind, key.key.name), (None, None))
                result.append((key, copy.deepcopy(self._metrics[key]), unit, description))
            return result