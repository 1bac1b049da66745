"""Client side of a request: sampling, span creation and client send/receive events."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING

from spantrace.context.state import SamplingDecision, ServerClientAndLocalSpanState
from spantrace.errors import ValidationError
from spantrace.sampling.filters import TraceFilter, evaluate_trace_filters
from spantrace.tracer.annotation_submitter import AnnotationSubmitter, ClientSpanAndEndpoint
from spantrace.tracer.random_source import IdGeneratorRandomSource, RandomSource
from spantrace.tracer.span import CLIENT_RECV, CLIENT_SEND, SERVER_ADDR, Span
from spantrace.tracer.span_id import SpanId

if TYPE_CHECKING:
    from spantrace.collector.span_collector import SpanCollector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientTracerConfig:
    """
    Collaborators of a ClientTracer.

    ``trace_filters`` run in order; the first one returning False stops
    tracing and the rest are not called, so order matters.
    """

    state: ServerClientAndLocalSpanState
    span_collector: SpanCollector
    random_source: RandomSource = field(default_factory=IdGeneratorRandomSource)
    trace_filters: Sequence[TraceFilter] = ()
    clock: Optional[Callable[[], int]] = None


class ClientTracer(AnnotationSubmitter):
    """
    Low level API for the client side of a request.

    Decides whether to trace (sampling) and records client send / client
    receive. The span lives in the state holder's client slot from
    ``start_new_span`` until ``set_client_received`` hands it to the collector.
    """

    def __init__(self, config: ClientTracerConfig) -> None:
        super().__init__(ClientSpanAndEndpoint(config.state), clock=config.clock)
        self.config = config
        self.state = config.state
        self.random_source = config.random_source
        self.span_collector = config.span_collector
        self.trace_filters: List[TraceFilter] = list(config.trace_filters)

    def set_client_sent(
        self,
        ipv4: Optional[int] = None,
        port: int = 0,
        service_name: Optional[str] = None,
    ) -> None:
        """
        Set the 'client send' event for the current request.

        When ``ipv4`` is given, the server address is logged first.

        Args:
            ipv4: IPv4 of the server as an int. For 1.2.3.4 this is
                (1 << 24) | (2 << 16) | (3 << 8) | 4
            port: Listen port the client is connecting to, or 0 if unknown
            service_name: Lowercase name of the service being called, or None if unknown
        """
        if ipv4 is not None:
            self.submit_address(SERVER_ADDR, ipv4, port, service_name)
        self.submit_start_annotation(CLIENT_SEND)

    def set_client_received(self) -> None:
        """
        Set the 'client receive' event for the current request.

        This finishes the span: it is handed to the collector and the client
        slots are cleared.
        """
        if self.submit_end_annotation(CLIENT_RECV, self.span_collector):
            self._clear_client_slots()

    def start_new_span(self, request_name: str) -> Optional[SpanId]:
        """
        Start a new client span bound to the current request.

        Args:
            request_name: Span name. Should be lowercase.

        Returns:
            Id of the new span, or None if this request should not be traced

        Raises:
            ValidationError: if ``request_name`` is None or empty
            ScopeError: if the state needs a request scope and none is active
        """
        if not request_name:
            raise ValidationError("request_name must be a non-empty string", {"request_name": request_name})

        sample = self.state.sample()
        if sample is SamplingDecision.NOT_SAMPLED:
            logger.debug("Request not sampled, no client span for %r", request_name)
            self._clear_client_slots()
            return None

        new_span_id = self._derive_child_id()
        if sample is SamplingDecision.UNDECIDED:
            if not evaluate_trace_filters(self.trace_filters, new_span_id.span_id, request_name):
                self._clear_client_slots()
                return None

        new_span = Span(
            trace_id=new_span_id.trace_id,
            id=new_span_id.span_id,
            name=request_name,
            parent_id=new_span_id.parent_span_id,
        )
        self.state.set_current_client_span(new_span)
        logger.debug("Started client span %r %s", request_name, new_span_id)
        return new_span_id

    def set_current_service_name(self, service_name: Optional[str]) -> None:
        """
        Override the local service name used in the annotations.

        Call after ``start_new_span`` and before ``set_client_sent``.
        """
        self.state.set_current_client_service_name(service_name)

    def _derive_child_id(self) -> SpanId:
        # Local span wins over server span as parent
        parent = self.state.get_current_local_span()
        if parent is None:
            parent = self.state.get_current_server_span().span
        new_id = self.random_source.next_long()
        if parent is None:
            return SpanId.create(new_id, new_id, None)
        return SpanId.create(parent.trace_id, new_id, parent.id)

    def _clear_client_slots(self) -> None:
        # Cleared even when already empty, callers rely on clean slots between requests
        self.state.set_current_client_span(None)
        self.state.set_current_client_service_name(None)
