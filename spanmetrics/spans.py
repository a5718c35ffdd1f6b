"""Spans carrying fields, and a layer that keeps those fields as metric labels."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any, TypeVar

from spanmetrics.labels import Label

T = TypeVar("T")

_span_ids = itertools.count(1)


def _debug_format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return repr(value)


@dataclass
class Labels:
    """Span fields recorded as metric labels, in recording order."""

    items: list[Label] = field(default_factory=list)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> Labels:
        labels = cls()
        for name, value in fields.items():
            labels.record(name, value)
        return labels

    def record(self, field: str, value: Any) -> None:
        """Record a field, choosing the formatting from the value's type."""
        if isinstance(value, bool):
            self.record_bool(field, value)
        elif isinstance(value, int):
            self.record_int(field, value)
        elif isinstance(value, str):
            self.record_str(field, value)
        else:
            self.record_debug(field, value)

    def record_str(self, field: str, value: str) -> None:
        self.items.append(Label(field, value))

    def record_bool(self, field: str, value: bool) -> None:
        self.items.append(Label(field, "true" if value else "false"))

    def record_int(self, field: str, value: int) -> None:
        self.items.append(Label(field, str(int(value))))

    def record_debug(self, field: str, value: Any) -> None:
        self.items.append(Label(field, _debug_format(value)))

    def extend_from_labels(self, other: Labels) -> None:
        self.items.extend(other.items)

    def __iter__(self) -> Iterator[Label]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(eq=False)
class Span:
    """A named unit of work with fields; entering it makes it the current span."""

    name: str
    fields: dict[str, Any]
    parent: Span | None
    registry: Registry = field(repr=False)
    id: int = field(default_factory=lambda: next(_span_ids))
    extensions: dict[type, Any] = field(default_factory=dict, repr=False)

    def enter(self) -> Span:
        self.registry._push(self)
        return self

    def exit(self) -> None:
        self.registry._pop(self)

    def __enter__(self) -> Span:
        return self.enter()

    def __exit__(self, *args: Any) -> None:
        self.exit()


class MetricsLayer:
    """Captures span fields at creation so they can later be used as metric labels."""

    def on_new_span(self, span: Span) -> None:
        labels = Labels.from_fields(span.fields)
        if span.parent is not None:
            parent_labels = span.parent.extensions.get(Labels)
            if parent_labels is not None:
                labels.extend_from_labels(parent_labels)
        span.extensions[Labels] = labels

    def with_labels(self, span: Span, func: Callable[[Sequence[Label]], T]) -> T | None:
        """Call ``func`` with the span's labels, or return None if it has none stored."""
        labels = span.extensions.get(Labels)
        if labels is None:
            return None
        return func(tuple(labels))


class Registry:
    """Creates spans, tracks the entered span per thread, and notifies layers."""

    def __init__(self, *args: Any) -> None:
        self.layers = list(args)
        self._local = threading.local()

    @property
    def _stack(self) -> list[Span]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _push(self, span: Span) -> None:
        self._stack.append(span)

    def _pop(self, span: Span) -> None:
        stack = self._stack
        for position in range(len(stack) - 1, -1, -1):
            if stack[position] is span:
                del stack[position]
                return

    def span(self, name: str, /, **kwargs: Any) -> Span:
        """Create a span whose parent is the currently entered span, if any."""
        new_span = Span(name, dict(kwargs), self.current_span(), self)
        for layer in self.layers:
            on_new_span = getattr(layer, "on_new_span", None)
            if on_new_span is not None:
                on_new_span(new_span)
        return new_span

    def current_span(self) -> Span | None:
        stack = self._stack
        return stack[-1] if stack else None

    def find_layer(self, layer_type: type[T]) -> T | None:
        return next((layer for layer in self.layers if isinstance(layer, layer_type)), None)


_DEFAULT: ContextVar[Registry | None] = ContextVar("spanmetrics_default_registry", default=None)


class _DefaultGuard:
    """Restores the previous default registry when closed or when its block ends."""

    def __init__(self, token: Token) -> None:
        self._token: Token | None = token

    def close(self) -> None:
        if self._token is not None:
            _DEFAULT.reset(self._token)
            self._token = None

    def __enter__(self) -> _DefaultGuard:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def set_default(registry: Registry) -> _DefaultGuard:
    """Make ``registry`` the default for the current context."""
    return _DefaultGuard(_DEFAULT.set(registry))


def get_default() -> Registry | None:
    return _DEFAULT.get()