"""A recorder wrapper that adds the current span's labels to metric keys."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

from spanmetrics.labels import Allowlist, IncludeAll, Key, Label, LabelFilter
from spanmetrics.spans import MetricsLayer, get_default


class Recorder(ABC):
    """Receives metric descriptions and registrations."""

    @abstractmethod
    def describe_counter(self, key_name: str, unit: Any, description: str) -> None: ...

    @abstractmethod
    def describe_gauge(self, key_name: str, unit: Any, description: str) -> None: ...

    @abstractmethod
    def describe_histogram(self, key_name: str, unit: Any, description: str) -> None: ...

    @abstractmethod
    def register_counter(self, key: Key) -> Any: ...

    @abstractmethod
    def register_gauge(self, key: Key) -> Any: ...

    @abstractmethod
    def register_histogram(self, key: Key) -> Any: ...


class TracingContextLayer:
    """Wraps recorders in a TracingContext using a given label filter."""

    def __init__(self, label_filter: LabelFilter) -> None:
        self.label_filter = label_filter

    @staticmethod
    def all() -> TracingContextLayer:
        """A layer that adds every span field as a label."""
        return TracingContextLayer(IncludeAll())

    @staticmethod
    def only_allow(allowed: Iterable[str]) -> TracingContextLayer:
        """A layer that adds only span fields whose names are in ``allowed``."""
        return TracingContextLayer(Allowlist(allowed))

    def layer(self, inner: Recorder) -> TracingContext:
        return TracingContext(inner, self.label_filter)


class TracingContext(Recorder):
    """A recorder that injects labels from the current span before delegating."""

    def __init__(self, inner: Recorder, label_filter: LabelFilter) -> None:
        self.inner = inner
        self.label_filter = label_filter

    def enhance_key(self, key: Key) -> Key | None:
        """Return ``key`` extended with the current span's labels, or None if nothing applies."""
        registry = get_default()
        if registry is None:
            return None
        span = registry.current_span()
        if span is None:
            return None
        layer = registry.find_layer(MetricsLayer)
        if layer is None:
            return None

        def extend(new_labels: Sequence[Label]) -> Key | None:
            if not new_labels:
                return None
            return key.with_extra_labels(
                label
                for label in new_labels
                if self.label_filter.should_include_label(key.name, label)
            )

        return layer.with_labels(span, extend)

    def _resolve(self, key: Key) -> Key:
        enhanced = self.enhance_key(key)
        return key if enhanced is None else enhanced

    def describe_counter(self, key_name: str, unit: Any, description: str) -> None:
        self.inner.describe_counter(key_name, unit, description)

    def describe_gauge(self, key_name: str, unit: Any, description: str) -> None:
        self.inner.describe_gauge(key_name, unit, description)

    def describe_histogram(self, key_name: str, unit: Any, description: str) -> None:
        self.inner.describe_histogram(key_name, unit, description)

    def register_counter(self, key: Key) -> Any:
        return self.inner.register_counter(self._resolve(key))

    def register_gauge(self, key: Key) -> Any:
        return self.inner.register_gauge(self._resolve(key))

    def register_histogram(self, key: Key) -> Any:
        return self.inner.register_histogram(self._resolve(key))