"""Trace filters: ordered predicates that make the sampling decision for undecided requests."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from spantrace.utils.helpers import to_unsigned_64

logger = logging.getLogger(__name__)

# Resolution of SampleRateTraceFilter, one in ten thousand
_RATE_BUCKETS = 10000


class TraceFilter:
    """
    Decides whether a new span should be traced.

    Filters are consulted only when the current request carries no sampling
    decision. They are shared by all requests of a tracer and must be safe to
    call from several threads at once.
    """

    def trace(self, span_id: int, request_name: str) -> bool:
        """
        Args:
            span_id: Span id of the candidate span
            request_name: Name of the request to be traced

        Returns:
            True to trace the request, False to drop it
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the filter."""
        return None


class SampleRateTraceFilter(TraceFilter):
    """
    Probabilistic filter keyed on the candidate span id.

    The same span id always gets the same answer, so the decision can be
    reproduced from the id alone.
    """

    def __init__(self, sample_rate: float = 1.0) -> None:
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError("sample_rate must be between 0.0 and 1.0")
        self.sample_rate = sample_rate
        self._threshold = int(round(sample_rate * _RATE_BUCKETS))

    def trace(self, span_id: int, request_name: str) -> bool:
        if self._threshold >= _RATE_BUCKETS:
            return True
        return to_unsigned_64(span_id) % _RATE_BUCKETS < self._threshold


class FixedSampleRateTraceFilter(TraceFilter):
    """
    Traces one request out of every ``sample_rate`` requests.

    A rate <= 0 never traces, 1 traces everything, 2 traces every other request.
    """

    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = sample_rate
        self._counter = 0
        self._lock = threading.Lock()

    def trace(self, span_id: int, request_name: str) -> bool:
        if self.sample_rate <= 0:
            return False
        if self.sample_rate == 1:
            return True
        with self._lock:
            self._counter += 1
            if self._counter >= self.sample_rate:
                self._counter = 0
                return True
            return False


def evaluate_trace_filters(filters: Iterable[TraceFilter], span_id: int, request_name: str) -> bool:
    """
    Run filters in declared order, stopping at the first one that rejects.

    Later filters are never invoked once a filter has said no, so the order
    of the list is part of the tracer configuration. An empty list traces.
    """
    for trace_filter in filters:
        if not trace_filter.trace(span_id, request_name):
            logger.debug(
                "Trace filter %s rejected request %r", type(trace_filter).__name__, request_name
            )
            return False
    return True
