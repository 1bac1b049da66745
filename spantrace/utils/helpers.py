"""Helpers for 64-bit ids and IPv4 addresses."""

from __future__ import annotations

import ipaddress

_UINT64_MASK = 0xFFFFFFFFFFFFFFFF
_INT64_SIGN = 0x8000000000000000


def to_signed_64(value: int) -> int:
    """
    Fold an arbitrary int into the signed 64-bit range.

    Args:
        value: Any int (e.g. an unsigned id from OpenTelemetry)

    Returns:
        The same 64 bits interpreted as a signed int64
    """
    value &= _UINT64_MASK
    if value & _INT64_SIGN:
        return value - (1 << 64)
    return value


def to_unsigned_64(value: int) -> int:
    """Interpret a signed int64 id as its unsigned 64-bit value."""
    return value & _UINT64_MASK


def format_trace_id(trace_id: int) -> str:
    """
    Format a 64-bit trace id as a hex string.

    Args:
        trace_id: trace id as a signed or unsigned int64

    Returns:
        16-character lowercase hex string
    """
    return format(to_unsigned_64(trace_id), '016x')


def format_span_id(span_id: int) -> str:
    """Format a 64-bit span id as a 16-character lowercase hex string."""
    return format(to_unsigned_64(span_id), '016x')


def parse_trace_id(hex_string: str) -> int:
    """
    Parse a hex trace id back into a signed int64.

    Args:
        hex_string: up to 16 hex characters

    Returns:
        trace id as signed int64, 0 for an empty string
    """
    if not hex_string:
        return 0
    return to_signed_64(int(hex_string, 16))


def parse_span_id(hex_string: str) -> int:
    """Parse a hex span id back into a signed int64 (0 for an empty string)."""
    if not hex_string:
        return 0
    return to_signed_64(int(hex_string, 16))


def ipv4_to_int(address: str) -> int:
    """
    Convert a dotted IPv4 literal to its 32-bit integer form.

    For 1.2.3.4 this is (1 << 24) | (2 << 16) | (3 << 8) | 4.

    Raises:
        ValueError: if ``address`` is not an IPv4 literal
    """
    return int(ipaddress.IPv4Address(address))


def ipv4_to_string(ipv4: int) -> str:
    """Convert a 32-bit integer IPv4 address to its dotted form."""
    return str(ipaddress.IPv4Address(ipv4 & 0xFFFFFFFF))
