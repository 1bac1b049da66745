"""Collectors receiving finished spans."""

from spantrace.collector.logging_collector import LoggingSpanCollector
from spantrace.collector.otel_collector import OpenTelemetrySpanCollector
from spantrace.collector.span_collector import EmptySpanCollector, SpanCollector

__all__ = [
    "SpanCollector",
    "EmptySpanCollector",
    "LoggingSpanCollector",
    "OpenTelemetrySpanCollector",
]
