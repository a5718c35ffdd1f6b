"""Span fields as metric labels, with a metric store, display formatting and a list selector."""

__version__ = "0.1.0"