"""Shared fixtures: deterministic ids and clock, a recording collector, per-request state."""

import itertools
import threading

import pytest

from spantrace.collector.span_collector import SpanCollector
from spantrace.context.state import RequestSpanState
from spantrace.tracer.client_tracer import ClientTracer, ClientTracerConfig
from spantrace.tracer.random_source import RandomSource
from spantrace.tracer.span import Endpoint

LOCAL_IPV4 = (10 << 24) | (0 << 16) | (0 << 8) | 1


class FixedRandomSource(RandomSource):
    """Returns the given ids in order, then keeps repeating the last one."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def next_long(self):
        index = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[index]


class RecordingCollector(SpanCollector):
    def __init__(self):
        super().__init__()
        self.spans = []
        self._lock = threading.Lock()

    def collect(self, span):
        with self._lock:
            self.spans.append(span)


class RecordingFilter:
    """Trace filter that remembers its calls."""

    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def trace(self, span_id, request_name):
        self.calls.append((span_id, request_name))
        return self.answer

    def close(self):
        return None


@pytest.fixture
def endpoint():
    return Endpoint.create("frontend", LOCAL_IPV4, 8080)


@pytest.fixture
def state(endpoint):
    return RequestSpanState(endpoint)


@pytest.fixture
def collector():
    return RecordingCollector()


@pytest.fixture
def random_source():
    return FixedRandomSource(42, 43, 44)


@pytest.fixture
def clock():
    counter = itertools.count(1_000_000, 100)
    return lambda: next(counter)


@pytest.fixture
def make_tracer(state, collector, random_source, clock):
    def factory(trace_filters=()):
        return ClientTracer(
            ClientTracerConfig(
                state=state,
                span_collector=collector,
                random_source=random_source,
                trace_filters=trace_filters,
                clock=clock,
            )
        )

    return factory


@pytest.fixture
def tracer(make_tracer):
    return make_tracer()
