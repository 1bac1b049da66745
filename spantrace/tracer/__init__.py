"""Tracer components for the tracing SDK."""

from spantrace.tracer.annotation_submitter import (
    AnnotationSubmitter,
    ClientSpanAndEndpoint,
    SpanAndEndpoint,
)
from spantrace.tracer.client_tracer import ClientTracer, ClientTracerConfig
from spantrace.tracer.random_source import IdGeneratorRandomSource, RandomSource, SeededRandomSource
from spantrace.tracer.span import (
    Annotation,
    AnnotationType,
    BinaryAnnotation,
    Endpoint,
    Span,
)
from spantrace.tracer.span_id import SpanId

__all__ = [
    "Annotation",
    "AnnotationType",
    "BinaryAnnotation",
    "Endpoint",
    "Span",
    "SpanId",
    "RandomSource",
    "IdGeneratorRandomSource",
    "SeededRandomSource",
    "SpanAndEndpoint",
    "ClientSpanAndEndpoint",
    "AnnotationSubmitter",
    "ClientTracer",
    "ClientTracerConfig",
]
