# spanmetrics

Add the fields of the active span as labels on your metrics.

With `spanmetrics` you open spans that carry named fields. A metric registered while
such a span is entered gets those fields added to its key as labels. The package also
has an in-memory metric store with histogram summaries, helpers that format metric
values with their units, and a selector that tracks a row in a scrollable list.

It has no dependencies outside the standard library.

## Installation

```
pip install spanmetrics
```

## Span fields as metric labels

```python
from spanmetrics.context import Recorder, TracingContextLayer
from spanmetrics.labels import Key
from spanmetrics.spans import MetricsLayer, Registry, set_default


class PrintingRecorder(Recorder):
    def describe_counter(self, key_name, unit, description): ...
    def describe_gauge(self, key_name, unit, description): ...
    def describe_histogram(self, key_name, unit, description): ...

    def register_counter(self, key):
        print(key)
        return key

    def register_gauge(self, key):
        return key

    def register_histogram(self, key):
        return key


registry = Registry(MetricsLayer())
guard = set_default(registry)

recorder = TracingContextLayer.all().layer(PrintingRecorder())

with registry.span("login", user="ferris", service="login_service"):
    recorder.register_counter(Key("login_attempts", [("env", "test")]))
    # Key(name='login_attempts', labels=(Label(key='env', value='test'),
    #     Label(key='user', value='ferris'), Label(key='service', value='login_service')))

guard.close()  # or use set_default(...) as a context manager
```

### The pieces

- `spanmetrics.labels` has `Label`, `Key` (a name with ordered labels;
  `Key.with_extra_labels` returns a new key with labels appended), and the filters
  `LabelFilter`, `IncludeAll` and `Allowlist`.
- `spanmetrics.spans` has `Registry`, which creates spans with `Registry.span(name, **fields)`
  and tracks the entered span for each thread, and `MetricsLayer`, which stores each new
  span's fields as `Labels`. A `Span` is entered with `enter()`/`exit()` or a `with` block.
  `set_default` makes a registry the default for the current context and returns a guard
  that puts the previous one back. `get_default` returns the current default.
- `spanmetrics.context` has the abstract `Recorder`, `TracingContextLayer`, which wraps a
  recorder, and `TracingContext`, which adds span labels to keys in `register_counter`,
  `register_gauge` and `register_histogram`. The `describe_*` calls are passed on
  unchanged.

### How labels are put together

- A span takes its fields when it is created. Fields given later are not seen.
- Field values become label text by type: strings stay as they are, booleans become
  `true`/`false`, integers use their decimal form, and other values use their `repr`.
- A span also holds the labels of its parent: first its own fields, then those of the
  enclosing spans from the inside out. A metric in a nested span gets the labels of
  every enclosing span.
- Labels are not deduplicated. If two spans use the same field name, both labels are
  added.
- The key's own labels come first, followed by the span labels that pass the filter.
- The key is left as it is when no registry is the default, when no span is entered,
  when the registry has no `MetricsLayer`, or when the span has no fields.

### Filtering labels

- `TracingContextLayer.all()` keeps every span field.
- `TracingContextLayer.only_allow(["env", "service"])` keeps only the fields you name.
- `TracingContextLayer(my_filter)` takes any `LabelFilter` subclass that implements
  `should_include_label(name, label)`.

## Storing metrics

`spanmetrics.store.MetricStore` is thread-safe and keeps metrics under a
`CompositeKey` (a `MetricKind` and a `Key`). Labels may be given as a mapping, as pairs or
as `Label` objects, and are sorted by name.

- `increment_counter` and `set_counter` take non-negative integers. A negative value
  raises `ValueError`.
- `increment_gauge`, `decrement_gauge` and `set_gauge` take floats.
- `record_histogram` adds a value to a `Summary`. `Summary` offers `min`, `max`,
  `quantile(q)` and `count`, and adding NaN raises `ValueError`.
- `describe(kind, name, unit, description)` sets the unit and the description for a
  metric name. The unit may be a `Unit` or its string name.
- `get_metrics()` returns `(key, value, unit, description)` tuples sorted by kind, name
  and labels. The values are copies.

The store also has a `state` attribute that holds a `ClientState`.

## Showing metric values

`spanmetrics.display` turns values into text:

- `Unit` lists the known units. `Unit.from_string` returns `None` for unknown names.
- `format_count` formats integer counters and `format_value` formats float gauge and
  histogram values. Both choose their form from the unit.
- `format_data` scales sizes to `B`, `KiB`, `MiB`, `GiB`, `TiB` or `PiB` with two
  decimals, for example `format_data(2048, Unit.Bytes) == "2.00 KiB"`.
- `format_time` and `format_duration` show durations in `s`, `ms`, `µs` or `ns` with
  limited precision, for example `format_duration(1_500_000) == "1.5ms"`.
- `display_name(key)` gives `name [k = v, ...]`. `format_line(name, value, width)`
  left-aligns the name and right-aligns the value.

`spanmetrics.selector.Selector` tracks the selected row of a list and wraps around at
both ends. Moving in an empty list raises `IndexError`.

## What this package does not do

It has no command, no terminal screen and no network client. Nothing here connects to
a running application to receive metrics. You fill a `MetricStore` by calling its
methods yourself, and you render the formatted lines yourself.