"""Metric keys, labels, and filters deciding which span fields become labels."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Label:
    """A single key/value pair attached to a metric key."""

    key: str
    value: str


def _as_label(item: Label | tuple[str, str]) -> Label:
    if isinstance(item, Label):
        return item
    key, value = item
    return Label(key, value)


@dataclass(frozen=True)
class Key:
    """A metric name together with its ordered labels."""

    name: str
    labels: tuple[Label, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(_as_label(item) for item in self.labels))

    def with_extra_labels(self, labels: Iterable[Label | tuple[str, str]]) -> Key:
        """Return a new key with ``labels`` appended after the existing ones."""
        return Key(self.name, self.labels + tuple(_as_label(item) for item in labels))


class LabelFilter(ABC):
    """Decides whether a span field should be added to a metric key as a label."""

    @abstractmethod
    def should_include_label(self, name: str, label: Label) -> bool:
        """Return True if ``label`` should be included in the key of metric ``name``."""


@dataclass(frozen=True)
class IncludeAll(LabelFilter):
    """A filter that allows every label."""

    def should_include_label(self, name: str, label: Label) -> bool:
        return True


class Allowlist(LabelFilter):
    """A filter that only allows labels whose names are in a fixed set."""

    def __init__(self, allowed: Iterable[str]) -> None:
        if isinstance(allowed, str):
            raise TypeError("allowed must be an iterable of label names, not a single string")
        self.label_names = frozenset(str(name) for name in allowed)

    def should_include_label(self, name: str, label: Label) -> bool:
        return label.key in self.label_names

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Allowlist):
            return NotImplemented
        return self.label_names == other.label_names

    def __hash__(self) -> int:
        return hash(self.label_names)

    def __repr__(self) -> str:
        return f"Allowlist({sorted(self.label_names)!r})"