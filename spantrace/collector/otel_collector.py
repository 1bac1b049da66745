"""Span collector that forwards finished spans into the OpenTelemetry SDK export pipeline."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import Event, ReadableSpan
from opentelemetry.sdk.trace import SpanProcessor as OTelSpanProcessor
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter
from opentelemetry.sdk.util.instrumentation import InstrumentationScope
from opentelemetry.trace import SpanContext, SpanKind, TraceFlags

from spantrace.collector.span_collector import SpanCollector
from spantrace.tracer.span import (
    CLIENT_RECV,
    CLIENT_SEND,
    SERVER_RECV,
    SERVER_SEND,
    AnnotationType,
    Endpoint,
    Span,
)
from spantrace.utils.helpers import to_unsigned_64
from spantrace.version import __version__

logger = logging.getLogger(__name__)

_SCOPE = InstrumentationScope("spantrace", __version__)


class OpenTelemetrySpanCollector(SpanCollector):
    """
    Converts finished spans into OpenTelemetry ``ReadableSpan`` objects.

    Delivery is delegated to an OpenTelemetry span processor: a
    ``BatchSpanProcessor`` exports on its own worker thread, a
    ``SimpleSpanProcessor`` exports inline. Either way ``collect`` never raises.
    """

    def __init__(self, span_processor: OTelSpanProcessor, resource: Optional[Resource] = None) -> None:
        """
        Initialize collector.

        Args:
            span_processor: OpenTelemetry span processor receiving converted spans
            resource: Base resource, merged with each span's local service name
        """
        super().__init__()
        self.span_processor = span_processor
        self.resource = resource or Resource.create({})
        self._resources: Dict[str, Resource] = {}
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def for_exporter(
        cls,
        exporter: SpanExporter,
        *,
        batch: bool = True,
        resource: Optional[Resource] = None,
    ) -> "OpenTelemetrySpanCollector":
        """Build a collector around an OpenTelemetry exporter (console, OTLP, in-memory...)."""
        processor = BatchSpanProcessor(exporter) if batch else SimpleSpanProcessor(exporter)
        return cls(processor, resource=resource)

    def collect(self, span: Span) -> None:
        if self._closed:
            return
        self.apply_default_annotations(span)
        try:
            readable = self.to_readable_span(span)
            self.span_processor.on_end(readable)
        except Exception:
            # Export errors stay in the collector; tracing must not break the caller
            logger.warning("Failed to hand span %r to OpenTelemetry", span, exc_info=True)

    def to_readable_span(self, span: Span) -> ReadableSpan:
        """
        Convert a finished span.

        Annotations become events, binary annotations become attributes and the
        local endpoint's service name becomes the ``service.name`` resource.
        """
        trace_id = to_unsigned_64(span.trace_id)
        context = SpanContext(
            trace_id=trace_id,
            span_id=to_unsigned_64(span.id),
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
        parent = None
        if span.parent_id is not None:
            parent = SpanContext(
                trace_id=trace_id,
                span_id=to_unsigned_64(span.parent_id),
                is_remote=False,
                trace_flags=TraceFlags(TraceFlags.SAMPLED),
            )

        annotations = list(span.annotations)
        timestamps = [a.timestamp for a in annotations]
        start_us = span.timestamp if span.timestamp is not None else min(timestamps, default=None)
        if span.duration is not None and start_us is not None:
            end_us = start_us + span.duration
        else:
            end_us = max(timestamps, default=start_us)

        events = [
            Event(
                name=a.value,
                attributes=_endpoint_attributes("endpoint", a.host) if a.host else None,
                timestamp=a.timestamp * 1000,
            )
            for a in annotations
        ]

        local = next((a.host for a in annotations if a.host is not None), None)

        return ReadableSpan(
            name=span.name,
            context=context,
            parent=parent,
            resource=self._resource_for(local),
            attributes=_binary_attributes(span),
            events=events,
            kind=_span_kind(annotations),
            start_time=start_us * 1000 if start_us is not None else None,
            end_time=end_us * 1000 if end_us is not None else None,
            instrumentation_scope=_SCOPE,
        )

    def force_flush(self, timeout: Optional[float] = None) -> None:
        timeout_millis = int(timeout * 1000) if timeout is not None else 30000
        self.span_processor.force_flush(timeout_millis=timeout_millis)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.span_processor.shutdown()

    def _resource_for(self, endpoint: Optional[Endpoint]) -> Resource:
        if endpoint is None:
            return self.resource
        with self._lock:
            resource = self._resources.get(endpoint.service_name)
            if resource is None:
                resource = self.resource.merge(Resource({SERVICE_NAME: endpoint.service_name}))
                self._resources[endpoint.service_name] = resource
            return resource


def _span_kind(annotations: List[Any]) -> SpanKind:
    values = {a.value for a in annotations}
    if values & {CLIENT_SEND, CLIENT_RECV}:
        return SpanKind.CLIENT
    if values & {SERVER_RECV, SERVER_SEND}:
        return SpanKind.SERVER
    return SpanKind.INTERNAL


def _endpoint_attributes(prefix: str, endpoint: Endpoint) -> Dict[str, Any]:
    return {
        f"{prefix}.service_name": endpoint.service_name,
        f"{prefix}.ipv4": endpoint.address,
        f"{prefix}.port": endpoint.port,
    }


def _binary_attributes(span: Span) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {}
    for binary in span.binary_annotations:
        if binary.annotation_type == AnnotationType.BOOL and binary.host is not None:
            # Address annotation: the endpoint is the payload
            attributes.update(_endpoint_attributes(binary.key, binary.host))
        elif binary.annotation_type == AnnotationType.BYTES:
            attributes[binary.key] = bytes(binary.value).hex()
        else:
            attributes[binary.key] = binary.value
    return attributes
