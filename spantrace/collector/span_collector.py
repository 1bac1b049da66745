"""Span collector interface: the sink finished spans are handed to."""

from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from spantrace.tracer.span import BinaryAnnotation, Span


class SpanCollector:
    """
    Base span collector.

    ``collect`` is called once per finished span, from whatever thread ended
    the span, so implementations must accept concurrent calls. Delivery is
    best effort: failures stay inside the collector.
    """

    def __init__(self) -> None:
        self._default_annotations: List[Tuple[str, str]] = []
        self._defaults_lock = threading.Lock()

    def collect(self, span: Span) -> None:
        """
        Accept a finished span.

        The collector owns the span from here on; the tracer never touches it again.
        """
        raise NotImplementedError

    def add_default_annotation(self, key: str, value: str) -> None:
        """Add a string binary annotation to every span collected from now on."""
        with self._defaults_lock:
            self._default_annotations.append((key, value))

    def apply_default_annotations(self, span: Span) -> Span:
        with self._defaults_lock:
            defaults = list(self._default_annotations)
        for key, value in defaults:
            span.add_binary_annotation(BinaryAnnotation.create(key, value))
        return span

    def force_flush(self, timeout: Optional[float] = None) -> None:
        """Force delivery of any pending spans."""
        pass

    def close(self) -> None:
        """Shutdown the collector."""
        pass


class EmptySpanCollector(SpanCollector):
    """Drops every span."""

    def collect(self, span: Span) -> None:
        return None
