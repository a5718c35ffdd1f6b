"""Human-readable formatting of metric names and values for the observer view."""

from __future__ import annotations

import math
import sys
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum

from spanmetrics.labels import Key

_NANOS_PER_SEC = 1_000_000_000
_MAX_DURATION_SECS = 2**64 - 1
_DATA_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")
_DATA_DELIMITER = 1024.0


class Unit(Enum):
    """Units a metric can be described with."""

    Count = "count"
    Percent = "percent"
    Seconds = "seconds"
    Milliseconds = "milliseconds"
    Microseconds = "microseconds"
    Nanoseconds = "nanoseconds"
    Tebibytes = "tebibytes"
    Gigibytes = "gigibytes"
    Mebibytes = "mebibytes"
    Kibibytes = "kibibytes"
    Bytes = "bytes"
    TerabitsPerSecond = "terabits_per_second"
    GigabitsPerSecond = "gigabits_per_second"
    MegabitsPerSecond = "megabits_per_second"
    KilobitsPerSecond = "kilobits_per_second"
    BitsPerSecond = "bits_per_second"
    CountPerSecond = "count_per_second"

    @classmethod
    def from_string(cls, label: str) -> Unit | None:
        """Parse a unit from its string name, or return None if unknown."""
        try:
            return cls(label)
        except ValueError:
            return None

    def is_data_based(self) -> bool:
        return self in _DATA_BASED

    def is_time_based(self) -> bool:
        return self in _TIME_SCALE

    def canonical_label(self) -> str:
        """The short suffix used when displaying a value in this unit."""
        return _CANONICAL_LABELS[self]


_CANONICAL_LABELS = {
    Unit.Count: "",
    Unit.Percent: "%",
    Unit.Seconds: "s",
    Unit.Milliseconds: "ms",
    Unit.Microseconds: "μs",
    Unit.Nanoseconds: "ns",
    Unit.Tebibytes: "TiB",
    Unit.Gigibytes: "GiB",
    Unit.Mebibytes: "MiB",
    Unit.Kibibytes: "KiB",
    Unit.Bytes: "B",
    Unit.TerabitsPerSecond: "Tbps",
    Unit.GigabitsPerSecond: "Gbps",
    Unit.MegabitsPerSecond: "Mbps",
    Unit.KilobitsPerSecond: "kbps",
    Unit.BitsPerSecond: "bps",
    Unit.CountPerSecond: "/s",
}

_DATA_BASED = frozenset(
    {
        Unit.Tebibytes,
        Unit.Gigibytes,
        Unit.Mebibytes,
        Unit.Kibibytes,
        Unit.Bytes,
        Unit.TerabitsPerSecond,
        Unit.GigabitsPerSecond,
        Unit.MegabitsPerSecond,
        Unit.KilobitsPerSecond,
        Unit.BitsPerSecond,
    }
)

# Nanoseconds per one of the unit.
_TIME_SCALE = {
    Unit.Nanoseconds: 1,
    Unit.Microseconds: 1_000,
    Unit.Milliseconds: 1_000_000,
    Unit.Seconds: _NANOS_PER_SEC,
}

_DATA_OFFSET = {
    Unit.Kibibytes: 1,
    Unit.Mebibytes: 2,
    Unit.Gigibytes: 3,
    Unit.Tebibytes: 4,
}


def _plain_float(value: float) -> str:
    """Shortest round-tripping decimal form, without exponent or trailing '.0'."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _fixed2(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.2f}"


def _check_count(value: int) -> int:
    if value < 0:
        raise ValueError(f"counter value must not be negative: {value}")
    return value


def format_count(value: int, unit: Unit | None) -> str:
    """Format an integer counter value in the given unit."""
    _check_count(value)
    if unit is None:
        return str(value)
    if unit.is_data_based():
        return format_data(float(value), unit)
    if unit.is_time_based():
        return format_duration(value * _TIME_SCALE[unit])
    return f"{value}{unit.canonical_label()}"


def format_value(value: float, unit: Unit | None) -> str:
    """Format a floating point gauge or histogram value in the given unit."""
    if unit is None:
        return _plain_float(value)
    if unit.is_data_based():
        return format_data(value, unit)
    if unit.is_time_based():
        return format_time(value, unit)
    return f"{_fixed2(value)}{unit.canonical_label()}"


def format_data(value: float, unit: Unit) -> str:
    """Scale a data amount to the largest binary unit that keeps it at or above one."""
    offset = _DATA_OFFSET.get(unit, 0)
    unit_idx_max = len(_DATA_UNITS) - 1
    value = float(value)

    if math.isinf(value) and value > 0:
        exponent = unit_idx_max - offset
        unit_idx = unit_idx_max
    else:
        if value > 0:
            exponent = max(0, math.floor(math.log(value) / math.log(_DATA_DELIMITER)))
        else:
            exponent = 0
        unit_idx = exponent + offset
        if unit_idx > unit_idx_max:
            exponent -= unit_idx - unit_idx_max
            unit_idx = unit_idx_max

    scaled = value / _DATA_DELIMITER**exponent
    return f"{_fixed2(scaled)} {_DATA_UNITS[unit_idx]}"


def format_time(value: float, unit: Unit) -> str:
    """Format a floating point time value as a truncated duration."""
    scale = _TIME_SCALE.get(unit)
    if scale is None:
        return _plain_float(value)

    adjusted = value / (_NANOS_PER_SEC / scale) if scale != _NANOS_PER_SEC else value
    sign = "-" if adjusted < 0.0 else ""
    normalized = abs(adjusted)
    is_normal = math.isfinite(normalized) and normalized >= sys.float_info.min
    if not is_normal and normalized != 0.0:
        return _plain_float(value)

    nanos = int(
        (Decimal(normalized) * _NANOS_PER_SEC).to_integral_value(rounding=ROUND_HALF_EVEN)
    )
    if nanos // _NANOS_PER_SEC > _MAX_DURATION_SECS:
        raise OverflowError(f"value {value!r} is too large to be shown as a duration")
    return f"{sign}{format_duration(nanos)}"


def _fmt_decimal(integer_part: int, fractional_part: int, divisor: int, precision: int) -> str:
    digits: list[int] = []
    while fractional_part > 0 and len(digits) < precision:
        digits.append(fractional_part // divisor)
        fractional_part %= divisor
        divisor //= 10

    if fractional_part > 0 and fractional_part >= divisor * 5:
        carry = True
        for position in reversed(range(len(digits))):
            if digits[position] < 9:
                digits[position] += 1
                carry = False
                break
            digits[position] = 0
        if carry:
            integer_part += 1

    if not digits:
        return str(integer_part)
    fraction = "".join(str(digit) for digit in digits).rstrip("0")
    return f"{integer_part}.{fraction}"


def format_duration(nanos: int) -> str:
    """Format a duration in nanoseconds with a unit suffix and limited precision."""
    if nanos < 0:
        raise ValueError(f"duration must not be negative: {nanos}")
    secs, sub_nanos = divmod(nanos, _NANOS_PER_SEC)
    if secs > 0:
        return _fmt_decimal(secs, sub_nanos, 100_000_000, 3) + "s"
    if nanos >= 1_000_000:
        whole, rest = divmod(nanos, 1_000_000)
        return _fmt_decimal(whole, rest, 100_000, 2) + "ms"
    if nanos >= 1_000:
        whole, rest = divmod(nanos, 1_000)
        return _fmt_decimal(whole, rest, 100, 1) + "µs"
    return _fmt_decimal(nanos, 0, 1, 0) + "ns"


def display_name(key: Key) -> str:
    """The metric name followed by its labels in brackets, if it has any."""
    if not key.labels:
        return key.name
    labels = ", ".join(f"{label.key} = {label.value}" for label in key.labels)
    return f"{key.name} [{labels}]"


def format_line(name: str, value: str, width: int) -> str:
    """Left-align ``name`` and right-align ``value`` within ``width`` characters."""
    space = max(0, width - len(name) - len(value))
    return f"{name}{' ' * space}{value}"