"""Utility functions for spantrace."""

from spantrace.utils.helpers import (
    format_span_id,
    format_trace_id,
    ipv4_to_int,
    ipv4_to_string,
    parse_span_id,
    parse_trace_id,
    to_signed_64,
    to_unsigned_64,
)

__all__ = [
    "format_trace_id",
    "format_span_id",
    "parse_trace_id",
    "parse_span_id",
    "to_signed_64",
    "to_unsigned_64",
    "ipv4_to_int",
    "ipv4_to_string",
]
