"""Per-request span state: current server, local and client spans plus the sampling decision."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import Token
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, TYPE_CHECKING

from opentelemetry import context as context_api

from spantrace.errors import ScopeError

if TYPE_CHECKING:
    from spantrace.tracer.span import Endpoint, Span


class SamplingDecision(Enum):
    SAMPLED = "sampled"
    NOT_SAMPLED = "not_sampled"
    UNDECIDED = "undecided"  # trace filters decide

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "SamplingDecision":
        """Convert an inbound nullable sampled flag (e.g. from a request header)."""
        if flag is None:
            return cls.UNDECIDED
        return cls.SAMPLED if flag else cls.NOT_SAMPLED


@dataclass(frozen=True)
class ServerSpan:
    """Server span of the current request together with its sampling decision."""

    span: Optional[Span] = None
    sample: SamplingDecision = SamplingDecision.UNDECIDED


ServerSpan.EMPTY = ServerSpan()
ServerSpan.NOT_SAMPLED = ServerSpan(span=None, sample=SamplingDecision.NOT_SAMPLED)


class ServerClientAndLocalSpanState:
    """
    State holder for one logical request.

    Server and local slots are written by inbound/local instrumentation and only
    read by the client tracer; the client slots are owned by the client tracer.
    Implementations must keep slots of concurrently running requests apart.
    """

    def endpoint(self) -> Endpoint:
        """Endpoint of the local service."""
        raise NotImplementedError

    def get_current_server_span(self) -> ServerSpan:
        raise NotImplementedError

    def set_current_server_span(self, server_span: Optional[ServerSpan]) -> None:
        raise NotImplementedError

    def get_current_local_span(self) -> Optional[Span]:
        raise NotImplementedError

    def set_current_local_span(self, span: Optional[Span]) -> None:
        raise NotImplementedError

    def get_current_client_span(self) -> Optional[Span]:
        raise NotImplementedError

    def set_current_client_span(self, span: Optional[Span]) -> None:
        raise NotImplementedError

    def get_current_client_service_name(self) -> Optional[str]:
        raise NotImplementedError

    def set_current_client_service_name(self, service_name: Optional[str]) -> None:
        raise NotImplementedError

    def sample(self) -> SamplingDecision:
        """Sampling decision of the current request, taken from the server span."""
        return self.get_current_server_span().sample


class RequestSpanState(ServerClientAndLocalSpanState):
    """
    Explicit state object, created per request and passed through its call chain.

    Not shared between requests; a request that hops threads simply carries the
    object along.
    """

    def __init__(self, endpoint: Endpoint) -> None:
        self._endpoint = endpoint
        self._server_span = ServerSpan.EMPTY
        self._local_span: Optional[Span] = None
        self._client_span: Optional[Span] = None
        self._client_service_name: Optional[str] = None

    def endpoint(self) -> Endpoint:
        return self._endpoint

    def get_current_server_span(self) -> ServerSpan:
        return self._server_span

    def set_current_server_span(self, server_span: Optional[ServerSpan]) -> None:
        self._server_span = server_span or ServerSpan.EMPTY

    def get_current_local_span(self) -> Optional[Span]:
        return self._local_span

    def set_current_local_span(self, span: Optional[Span]) -> None:
        self._local_span = span

    def get_current_client_span(self) -> Optional[Span]:
        return self._client_span

    def set_current_client_span(self, span: Optional[Span]) -> None:
        self._client_span = span

    def get_current_client_service_name(self) -> Optional[str]:
        return self._client_service_name

    def set_current_client_service_name(self, service_name: Optional[str]) -> None:
        self._client_service_name = service_name


class _RequestSlots:
    """Mutable slots of one request; shared by every context derived from its scope."""

    __slots__ = ("server_span", "local_span", "client_span", "client_service_name")

    def __init__(self, server_span: Optional[ServerSpan] = None) -> None:
        self.server_span = server_span or ServerSpan.EMPTY
        self.local_span: Optional[Span] = None
        self.client_span: Optional[Span] = None
        self.client_service_name: Optional[str] = None


class ContextSpanState(ServerClientAndLocalSpanState):
    """
    State kept in the OpenTelemetry context.

    Each request runs inside its own scope (``request_scope()``, or
    ``start_request()``/``end_request()``), which attaches fresh slots on entry
    and detaches them on exit. Slot writes change the attached slots in place,
    so a value cleared inside a nested OpenTelemetry scope or a child asyncio
    task stays cleared for the rest of the request.

    Outside a scope every getter reports an empty slot, clearing a slot is a
    no-op and storing a value raises ``ScopeError``. Context keys are created
    per instance, two instances never see each other's slots.
    """

    def __init__(self, endpoint: Endpoint) -> None:
        self._endpoint = endpoint
        self._slots_key = context_api.create_key("spantrace-request-slots")

    def start_request(self, server_span: Optional[ServerSpan] = None) -> Token:
        """
        Attach fresh slots for a new request.

        Returns:
            Token needed to restore the previous state with ``end_request()``
        """
        slots = _RequestSlots(server_span)
        return context_api.attach(context_api.set_value(self._slots_key, slots))

    def end_request(self, token: Token) -> None:
        """
        Detach the slots attached by ``start_request()``.

        Args:
            token: Token returned by start_request()
        """
        context_api.detach(token)

    @contextmanager
    def request_scope(self, server_span: Optional[ServerSpan] = None) -> Iterator["ContextSpanState"]:
        """Run the body as one request with its own empty client and local slots."""
        token = self.start_request(server_span)
        try:
            yield self
        finally:
            self.end_request(token)

    def in_request(self) -> bool:
        return self._slots() is not None

    def endpoint(self) -> Endpoint:
        return self._endpoint

    def get_current_server_span(self) -> ServerSpan:
        slots = self._slots()
        return slots.server_span if slots is not None else ServerSpan.EMPTY

    def set_current_server_span(self, server_span: Optional[ServerSpan]) -> None:
        slots = self._slots_for_write("server_span", server_span)
        if slots is not None:
            slots.server_span = server_span or ServerSpan.EMPTY

    def get_current_local_span(self) -> Optional[Span]:
        slots = self._slots()
        return slots.local_span if slots is not None else None

    def set_current_local_span(self, span: Optional[Span]) -> None:
        slots = self._slots_for_write("local_span", span)
        if slots is not None:
            slots.local_span = span

    def get_current_client_span(self) -> Optional[Span]:
        slots = self._slots()
        return slots.client_span if slots is not None else None

    def set_current_client_span(self, span: Optional[Span]) -> None:
        slots = self._slots_for_write("client_span", span)
        if slots is not None:
            slots.client_span = span

    def get_current_client_service_name(self) -> Optional[str]:
        slots = self._slots()
        return slots.client_service_name if slots is not None else None

    def set_current_client_service_name(self, service_name: Optional[str]) -> None:
        slots = self._slots_for_write("client_service_name", service_name)
        if slots is not None:
            slots.client_service_name = service_name

    def _slots(self) -> Optional[_RequestSlots]:
        return context_api.get_value(self._slots_key)

    def _slots_for_write(self, slot: str, value) -> Optional[_RequestSlots]:
        slots = self._slots()
        if slots is None and value is not None:
            raise ScopeError("No active request scope", {"slot": slot})
        return slots
