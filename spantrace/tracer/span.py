"""Span record and annotation value types (Zipkin model)."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from spantrace.errors import ValidationError
from spantrace.utils.helpers import format_span_id, format_trace_id, ipv4_to_string

# Core annotation values
CLIENT_SEND = "cs"
CLIENT_RECV = "cr"
SERVER_SEND = "ss"
SERVER_RECV = "sr"

# Address binary annotation keys
CLIENT_ADDR = "ca"
SERVER_ADDR = "sa"

UNKNOWN_SERVICE_NAME = "unknown"


class AnnotationType(IntEnum):
    BOOL = 0
    BYTES = 1
    I16 = 2
    I32 = 3
    I64 = 4
    DOUBLE = 5
    STRING = 6


@dataclass(frozen=True)
class Endpoint:
    """Network identity of a traced participant."""

    ipv4: int
    port: int
    service_name: str

    @classmethod
    def create(cls, service_name: Optional[str], ipv4: int, port: int = 0) -> "Endpoint":
        """
        Build an endpoint, normalizing the service name.

        Args:
            service_name: Service name, lowercased. ``None`` or empty becomes "unknown".
            ipv4: IPv4 address as a 32-bit int, e.g. 0x01020304 for 1.2.3.4
            port: Port, or 0 if unknown

        Raises:
            ValidationError: if the port does not fit an unsigned 16-bit value
        """
        if port is None:
            port = 0
        if not 0 <= port <= 0xFFFF:
            raise ValidationError("Endpoint port out of range", {"port": port})
        name = service_name.lower() if service_name else UNKNOWN_SERVICE_NAME
        return cls(ipv4=ipv4 & 0xFFFFFFFF, port=port, service_name=name)

    def with_service_name(self, service_name: str) -> "Endpoint":
        return replace(self, service_name=service_name.lower() if service_name else UNKNOWN_SERVICE_NAME)

    @property
    def address(self) -> str:
        return ipv4_to_string(self.ipv4)

    def __str__(self) -> str:
        return f"{self.service_name}@{self.address}:{self.port}"


@dataclass(frozen=True)
class Annotation:
    timestamp: int  # microseconds since epoch
    value: str
    host: Optional[Endpoint] = None


@dataclass(frozen=True)
class BinaryAnnotation:
    key: str
    value: Union[bool, str, int, float, bytes]
    annotation_type: AnnotationType
    host: Optional[Endpoint] = None

    @classmethod
    def address(cls, key: str, endpoint: Endpoint) -> "BinaryAnnotation":
        """Address annotations carry the endpoint itself; the value is always True."""
        return cls(key=key, value=True, annotation_type=AnnotationType.BOOL, host=endpoint)

    @classmethod
    def create(cls, key: str, value: Union[str, int], host: Optional[Endpoint] = None) -> "BinaryAnnotation":
        if isinstance(value, bool):
            return cls(key=key, value=value, annotation_type=AnnotationType.BOOL, host=host)
        if isinstance(value, int):
            return cls(key=key, value=value, annotation_type=AnnotationType.I64, host=host)
        return cls(key=key, value=str(value), annotation_type=AnnotationType.STRING, host=host)


class Span:
    """
    Mutable span record.

    While in flight a span is owned by the state holder; once handed to a
    collector it must not be mutated by the tracer any more.
    """

    def __init__(
        self,
        trace_id: int,
        id: int,
        name: str,
        parent_id: Optional[int] = None,
    ) -> None:
        """
        Initialize span.

        Args:
            trace_id: Trace id shared by every span of the trace
            id: Span id
            name: Span name, lowercase by convention
            parent_id: Parent span id, ``None`` for a root span
        """
        self.trace_id = trace_id
        self.id = id
        self.parent_id = parent_id
        self.name = name

        # Set by the first start annotation and the end annotation
        self.timestamp: Optional[int] = None
        self.duration: Optional[int] = None

        self.annotations: List[Annotation] = []
        self.binary_annotations: List[BinaryAnnotation] = []
        self._events: List[Union[Annotation, BinaryAnnotation]] = []
        self._lock = threading.Lock()

    @property
    def events(self) -> List[Union[Annotation, BinaryAnnotation]]:
        """Annotations and binary annotations interleaved in submission order."""
        with self._lock:
            return list(self._events)

    def add_annotation(self, annotation: Annotation, start: bool = False) -> None:
        with self._lock:
            if start and self.timestamp is None:
                self.timestamp = annotation.timestamp
            self.annotations.append(annotation)
            self._events.append(annotation)

    def add_end_annotation(self, annotation: Annotation) -> None:
        with self._lock:
            self.annotations.append(annotation)
            self._events.append(annotation)
            if self.timestamp is not None:
                self.duration = annotation.timestamp - self.timestamp

    def add_binary_annotation(self, binary_annotation: BinaryAnnotation) -> None:
        with self._lock:
            self.binary_annotations.append(binary_annotation)
            self._events.append(binary_annotation)

    def get_binary_annotation(self, key: str) -> Optional[BinaryAnnotation]:
        with self._lock:
            for binary_annotation in self.binary_annotations:
                if binary_annotation.key == key:
                    return binary_annotation
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view used for logging."""
        with self._lock:
            return {
                "trace_id": format_trace_id(self.trace_id),
                "id": format_span_id(self.id),
                "parent_id": format_span_id(self.parent_id) if self.parent_id is not None else None,
                "name": self.name,
                "timestamp": self.timestamp,
                "duration": self.duration,
                "annotations": [
                    {"timestamp": a.timestamp, "value": a.value, "host": str(a.host) if a.host else None}
                    for a in self.annotations
                ],
                "binary_annotations": [
                    {"key": b.key, "value": b.value, "host": str(b.host) if b.host else None}
                    for b in self.binary_annotations
                ],
            }

    def __repr__(self) -> str:
        return (
            f"Span(name={self.name!r}, trace_id={format_trace_id(self.trace_id)}, "
            f"id={format_span_id(self.id)}, annotations={len(self.annotations)})"
        )
