"""spantrace: client-side span lifecycle for Zipkin-style distributed tracing."""

from spantrace.version import __version__
from spantrace.tracer import (
    Annotation,
    AnnotationType,
    BinaryAnnotation,
    ClientTracer,
    ClientTracerConfig,
    Endpoint,
    IdGeneratorRandomSource,
    RandomSource,
    SeededRandomSource,
    Span,
    SpanId,
)
from spantrace.context import (
    ContextSpanState,
    RequestSpanState,
    SamplingDecision,
    ServerClientAndLocalSpanState,
    ServerSpan,
)
from spantrace.sampling import (
    FixedSampleRateTraceFilter,
    SampleRateTraceFilter,
    TraceFilter,
)
from spantrace.collector import (
    EmptySpanCollector,
    LoggingSpanCollector,
    OpenTelemetrySpanCollector,
    SpanCollector,
)
from spantrace.config import TracingSettings, load_config
from spantrace.bootstrap import build_client_tracer

__all__ = [
    "__version__",
    "Annotation",
    "AnnotationType",
    "BinaryAnnotation",
    "ClientTracer",
    "ClientTracerConfig",
    "Endpoint",
    "IdGeneratorRandomSource",
    "RandomSource",
    "SeededRandomSource",
    "Span",
    "SpanId",
    "ContextSpanState",
    "RequestSpanState",
    "SamplingDecision",
    "ServerClientAndLocalSpanState",
    "ServerSpan",
    "TraceFilter",
    "SampleRateTraceFilter",
    "FixedSampleRateTraceFilter",
    "SpanCollector",
    "EmptySpanCollector",
    "LoggingSpanCollector",
    "OpenTelemetrySpanCollector",
    "TracingSettings",
    "load_config",
    "build_client_tracer",
]
