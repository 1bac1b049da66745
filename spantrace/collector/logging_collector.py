"""Span collector that logs spans when they are collected."""

from __future__ import annotations

import logging
from typing import Optional

from spantrace.collector.span_collector import SpanCollector
from spantrace.tracer.span import AnnotationType, Span
from spantrace.utils.helpers import format_span_id, format_trace_id


class LoggingSpanCollector(SpanCollector):
    """Logs a span summary using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        super().__init__()
        self.logger = logger or logging.getLogger("spantrace.spans")
        self.level = level

    def collect(self, span: Span) -> None:
        self.apply_default_annotations(span)
        if not self.logger.isEnabledFor(self.level):
            return
        parent = format_span_id(span.parent_id) if span.parent_id is not None else "-"
        annotations = ",".join(a.value for a in span.annotations)
        binary = {
            b.key: str(b.host) if b.annotation_type == AnnotationType.BOOL and b.host else b.value
            for b in span.binary_annotations
        }
        msg = (
            f"[span] name={span.name} trace_id={format_trace_id(span.trace_id)} "
            f"span_id={format_span_id(span.id)} parent_id={parent} "
            f"duration_us={span.duration} annotations={annotations}"
        )
        if binary:
            msg += f" binary_annotations={binary}"
        self.logger.log(self.level, msg)
