"""Assemble a ClientTracer from TracingSettings."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from spantrace.collector import (
    EmptySpanCollector,
    LoggingSpanCollector,
    OpenTelemetrySpanCollector,
    SpanCollector,
)
from spantrace.config import TracingSettings, load_config
from spantrace.context.state import ContextSpanState, ServerClientAndLocalSpanState
from spantrace.errors import CollectorError
from spantrace.sampling.filters import FixedSampleRateTraceFilter, SampleRateTraceFilter, TraceFilter
from spantrace.tracer.client_tracer import ClientTracer, ClientTracerConfig
from spantrace.tracer.random_source import IdGeneratorRandomSource, RandomSource
from spantrace.tracer.span import Endpoint
from spantrace.utils.helpers import ipv4_to_int

logger = logging.getLogger(__name__)


def build_state(settings: TracingSettings) -> ServerClientAndLocalSpanState:
    """
    Create the default context-backed state.

    Callers run each request inside ``state.request_scope()`` so slots left
    behind by one request are never seen by the next one on a pooled thread.
    """
    endpoint = Endpoint.create(settings.service_name, ipv4_to_int(settings.ipv4), settings.port)
    return ContextSpanState(endpoint)


def build_trace_filters(settings: TracingSettings) -> List[TraceFilter]:
    """Counting filter first, then the probabilistic one."""
    filters: List[TraceFilter] = []
    if settings.sample_one_in is not None:
        filters.append(FixedSampleRateTraceFilter(settings.sample_one_in))
    if settings.sample_rate < 1.0:
        filters.append(SampleRateTraceFilter(settings.sample_rate))
    return filters


def build_collector(settings: TracingSettings) -> SpanCollector:
    """
    Create the span collector named by ``settings.collector``.

    Raises:
        CollectorError: if the OTLP exporter package is not installed
    """
    if settings.collector == "empty":
        return EmptySpanCollector()
    if settings.collector == "logging":
        return LoggingSpanCollector()

    resource = Resource.create({SERVICE_NAME: settings.service_name})
    if settings.collector == "console":
        return OpenTelemetrySpanCollector.for_exporter(ConsoleSpanExporter(), batch=False, resource=resource)

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    except ImportError as e:
        raise CollectorError(
            "OTLP collector requires opentelemetry-exporter-otlp-proto-http (pip install spantrace[otlp])"
        ) from e
    exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
    return OpenTelemetrySpanCollector.for_exporter(exporter, batch=settings.batch_export, resource=resource)


def build_client_tracer(
    settings: Optional[TracingSettings] = None,
    *,
    state: Optional[ServerClientAndLocalSpanState] = None,
    collector: Optional[SpanCollector] = None,
    random_source: Optional[RandomSource] = None,
    trace_filters: Optional[Sequence[TraceFilter]] = None,
) -> ClientTracer:
    """
    Build a ClientTracer.

    Anything not passed explicitly is derived from ``settings``, which default
    to ``load_config()``. With the default state, wrap every request in
    ``tracer.state.request_scope()``::

        tracer = build_client_tracer()
        with tracer.state.request_scope():
            tracer.start_new_span("get-user")
            tracer.set_client_sent()
            ...
            tracer.set_client_received()
    """
    if settings is None:
        settings = load_config()
    if settings.debug:
        logging.getLogger("spantrace").setLevel(logging.DEBUG)

    config = ClientTracerConfig(
        state=state if state is not None else build_state(settings),
        span_collector=collector if collector is not None else build_collector(settings),
        random_source=random_source if random_source is not None else IdGeneratorRandomSource(),
        trace_filters=tuple(trace_filters) if trace_filters is not None else tuple(build_trace_filters(settings)),
    )
    logger.debug(
        "Built client tracer for service %r with %d trace filter(s)",
        settings.service_name,
        len(config.trace_filters),
    )
    return ClientTracer(config)
