"""Annotation submission shared by the span-role tracers."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union, TYPE_CHECKING

from spantrace.tracer.span import Annotation, BinaryAnnotation, Endpoint, Span

if TYPE_CHECKING:
    from spantrace.collector.span_collector import SpanCollector
    from spantrace.context.state import ServerClientAndLocalSpanState

logger = logging.getLogger(__name__)


def current_time_microseconds() -> int:
    return time.time_ns() // 1000


class SpanAndEndpoint:
    """Gives a tracer role access to its current span and the endpoint to annotate with."""

    def __init__(self, state: "ServerClientAndLocalSpanState") -> None:
        self.state = state

    def span(self) -> Optional[Span]:
        raise NotImplementedError

    def endpoint(self) -> Endpoint:
        raise NotImplementedError


class ClientSpanAndEndpoint(SpanAndEndpoint):
    """Client role: the current client span, annotated as the (possibly overridden) client service."""

    def span(self) -> Optional[Span]:
        return self.state.get_current_client_span()

    def endpoint(self) -> Endpoint:
        endpoint = self.state.endpoint()
        service_name = self.state.get_current_client_service_name()
        if service_name is None:
            return endpoint
        return endpoint.with_service_name(service_name)


class AnnotationSubmitter:
    """
    Timestamps annotations and attaches them to the current span of a role.

    Every operation is a silent no-op when the role has no current span;
    that is the normal outcome when sampling suppressed the span.
    """

    def __init__(
        self,
        span_and_endpoint: SpanAndEndpoint,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        """
        Args:
            span_and_endpoint: Accessor for the role's current span and endpoint
            clock: Returns the current time in microseconds since epoch
        """
        self.span_and_endpoint = span_and_endpoint
        self._clock = clock or current_time_microseconds

    def current_time_microseconds(self) -> int:
        return self._clock()

    def submit_annotation(self, value: str) -> None:
        """Add a custom timestamped annotation to the current span."""
        span = self.span_and_endpoint.span()
        if span is None:
            return
        span.add_annotation(self._annotation(value))

    def submit_binary_annotation(self, key: str, value: Union[str, int]) -> None:
        """Add a key/value annotation to the current span."""
        span = self.span_and_endpoint.span()
        if span is None or value is None:
            return
        span.add_binary_annotation(
            BinaryAnnotation.create(key, value, self.span_and_endpoint.endpoint())
        )

    def submit_start_annotation(self, value: str) -> None:
        """Add the annotation that starts the span's timing (e.g. client send)."""
        span = self.span_and_endpoint.span()
        if span is None:
            return
        span.add_annotation(self._annotation(value), start=True)

    def submit_end_annotation(self, value: str, collector: "SpanCollector") -> bool:
        """
        Add the annotation that finishes the span and hand the span to the collector.

        Returns:
            True if a span was closed and handed off; the caller must then clear
            its slots. False if there was no current span.
        """
        span = self.span_and_endpoint.span()
        if span is None:
            return False
        span.add_end_annotation(self._annotation(value))
        try:
            collector.collect(span)
        except Exception:
            # Collectors should not crash tracing; the span still counts as handed off
            logger.warning("Span collector %s failed to collect %r", type(collector).__name__, span, exc_info=True)
        else:
            logger.debug("Collected span %r", span)
        return True

    def submit_address(
        self,
        key: str,
        ipv4: int,
        port: int = 0,
        service_name: Optional[str] = None,
    ) -> None:
        """
        Attach an address binary annotation describing a remote endpoint.

        Args:
            key: Annotation key, e.g. "sa" for the server being called
            ipv4: IPv4 as a 32-bit int
            port: Port, or 0 if unknown
            service_name: Remote service name, "unknown" when None
        """
        span = self.span_and_endpoint.span()
        if span is None:
            return
        span.add_binary_annotation(BinaryAnnotation.address(key, Endpoint.create(service_name, ipv4, port)))

    def _annotation(self, value: str) -> Annotation:
        return Annotation(
            timestamp=self.current_time_microseconds(),
            value=value,
            host=self.span_and_endpoint.endpoint(),
        )
