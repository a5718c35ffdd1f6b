import math

import pytest

from spanmetrics.display import Unit
from spanmetrics.labels import Key, Label
from spanmetrics.store import (
    ClientState,
    CompositeKey,
    MetricKind,
    MetricStore,
    Summary,
)


def values_by_key(store):
    return {key: value for key, value, _unit, _desc in store.get_metrics()}


def test_counter_increments_accumulate_like_a_set():
    a = MetricStore()
    a.increment_counter("hits", None, 4)
    a.increment_counter("hits", None, 6)
    b = MetricStore()
    b.set_counter("hits", None, 4 + 6)
    assert values_by_key(a) == values_by_key(b)


def test_set_counter_overwrites():
    store = MetricStore()
    store.increment_counter("hits", None, 7)
    store.set_counter("hits", None, 2)
    [(key, value, _, _)] = store.get_metrics()
    assert key == CompositeKey(MetricKind.Counter, Key("hits"))
    assert value == 2


def test_negative_counter_rejected():
    store = MetricStore()
    with pytest.raises(ValueError):
        store.increment_counter("hits", None, -1)
    with pytest.raises(ValueError):
        store.set_counter("hits", None, -5)


def test_gauge_increment_then_decrement_returns_to_start():
    store = MetricStore()
    store.set_gauge("temp", None, 1.5)
    store.increment_gauge("temp", None, 2.25)
    store.decrement_gauge("temp", None, 2.25)
    [(_, value, _, _)] = store.get_metrics()
    assert value == 1.5


def test_gauge_decrement_from_nothing_goes_negative():
    store = MetricStore()
    store.decrement_gauge("temp", None, 3.0)
    [(key, value, _, _)] = store.get_metrics()
    assert key.kind is MetricKind.Gauge
    assert value == -3.0


def test_labels_are_sorted_by_name():
    store = MetricStore()
    store.increment_counter("req", {"zone": "b", "app": "web"}, 1)
    [(key, _, _, _)] = store.get_metrics()
    assert key.key.labels == (Label("app", "web"), Label("zone", "b"))


def test_label_order_does_not_split_metrics():
    store = MetricStore()
    store.increment_counter("req", [("x", "1"), ("y", "2")], 1)
    store.increment_counter("req", [("y", "2"), ("x", "1")], 1)
    metrics = store.get_metrics()
    assert len(metrics) == 1


def test_metrics_sorted_by_kind_then_name():
    store = MetricStore()
    store.record_histogram("a", None, 1.0)
    store.set_gauge("b", None, 1.0)
    store.increment_counter("z", None, 1)
    store.increment_counter("c", None, 1)
    keys = [key for key, _, _, _ in store.get_metrics()]
    assert [(k.kind, k.key.name) for k in keys] == [
        (MetricKind.Counter, "c"),
        (MetricKind.Counter, "z"),
        (MetricKind.Gauge, "b"),
        (MetricKind.Histogram, "a"),
    ]


def test_same_name_different_kinds_are_distinct():
    store = MetricStore()
    store.increment_counter("x", None, 1)
    store.set_gauge("x", None, 2.0)
    kinds = [key.kind for key, _, _, _ in store.get_metrics()]
    assert kinds == [MetricKind.Counter, MetricKind.Gauge]


def test_describe_attaches_unit_and_description():
    store = MetricStore()
    store.describe(MetricKind.Gauge, "mem", "bytes", "memory in use")
    store.set_gauge("mem", {"host": "a"}, 10.0)
    store.increment_counter("mem", None, 1)
    result = {key.kind: (unit, desc) for key, _, unit, desc in store.get_metrics()}
    assert result[MetricKind.Gauge] == (Unit.Bytes, "memory in use")
    assert result[MetricKind.Counter] == (None, None)


def test_describe_unknown_unit_string_gives_none():
    store = MetricStore()
    store.describe(MetricKind.Counter, "c", "furlongs", None)
    store.increment_counter("c", None, 1)
    [(_, _, unit, desc)] = store.get_metrics()
    assert unit is None
    assert desc is None


def test_describe_replaces_previous_metadata():
    store = MetricStore()
    store.describe(MetricKind.Counter, "c", Unit.Seconds, "first")
    store.describe(MetricKind.Counter, "c", None, "second")
    store.increment_counter("c", None, 1)
    [(_, _, unit, desc)] = store.get_metrics()
    assert (unit, desc) == (None, "second")


def test_histogram_records_into_summary():
    store = MetricStore()
    for value in (3.0, 1.0, 2.0):
        store.record_histogram("lat", None, value)
    [(_, summary, _, _)] = store.get_metrics()
    assert summary.count() == 3
    assert summary.min() == 1.0
    assert summary.max() == 3.0


def test_snapshot_is_independent_of_later_updates():
    store = MetricStore()
    store.record_histogram("lat", None, 1.0)
    [(_, snapshot, _, _)] = store.get_metrics()
    store.record_histogram("lat", None, 9.0)
    assert snapshot.count() == 1
    [(_, fresh, _, _)] = store.get_metrics()
    assert fresh.count() == 2


def test_empty_summary():
    summary = Summary()
    assert summary.count() == 0
    assert summary.min() == math.inf
    assert summary.max() == -math.inf
    assert summary.quantile(0.5) is None


def test_summary_quantile_bounds():
    summary = Summary()
    for value in (5.0, 1.0, 3.0):
        summary.add(value)
    assert summary.quantile(0.0) == summary.min()
    assert summary.quantile(1.0) == summary.max()
    assert summary.quantile(-0.1) is None
    assert summary.quantile(1.1) is None


def test_summary_quantiles_are_monotonic_and_in_range():
    summary = Summary()
    for value in range(100):
        summary.add(float(value))
    qs = [summary.quantile(q) for q in (0.1, 0.5, 0.9, 0.99, 0.999)]
    assert qs == sorted(qs)
    assert all(summary.min() <= q <= summary.max() for q in qs)


def test_summary_rejects_nan():
    with pytest.raises(ValueError):
        Summary().add(float("nan"))


def test_client_state_defaults_to_disconnected():
    store = MetricStore()
    assert store.state == ClientState(connected=False, message=None)
    assert ClientState(True).connected is True