"""Per-request span state for the tracing SDK."""

from spantrace.context.state import (
    ContextSpanState,
    RequestSpanState,
    SamplingDecision,
    ServerClientAndLocalSpanState,
    ServerSpan,
)

__all__ = [
    "SamplingDecision",
    "ServerSpan",
    "ServerClientAndLocalSpanState",
    "RequestSpanState",
    "ContextSpanState",
]
