"""Sampling decisions for new client spans."""

from spantrace.sampling.filters import (
    FixedSampleRateTraceFilter,
    SampleRateTraceFilter,
    TraceFilter,
    evaluate_trace_filters,
)

__all__ = [
    "TraceFilter",
    "SampleRateTraceFilter",
    "FixedSampleRateTraceFilter",
    "evaluate_trace_filters",
]
