"""Immutable trace/span/parent identifiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from spantrace.utils.helpers import format_span_id, format_trace_id


@dataclass(frozen=True)
class SpanId:
    trace_id: int
    span_id: int
    parent_span_id: Optional[int] = None  # None = root of a new trace

    @classmethod
    def create(cls, trace_id: int, span_id: int, parent_span_id: Optional[int] = None) -> "SpanId":
        return cls(trace_id=trace_id, span_id=span_id, parent_span_id=parent_span_id)

    def is_root(self) -> bool:
        return self.parent_span_id is None

    def __str__(self) -> str:
        parent = format_span_id(self.parent_span_id) if self.parent_span_id is not None else "-"
        return (
            f"[trace_id={format_trace_id(self.trace_id)}, "
            f"span_id={format_span_id(self.span_id)}, parent_span_id={parent}]"
        )
