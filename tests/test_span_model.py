"""Identifiers, endpoints and id/address helpers."""

import pytest

from spantrace.errors import ValidationError
from spantrace.tracer.span import BinaryAnnotation, AnnotationType, Endpoint, Span
from spantrace.tracer.span_id import SpanId
from spantrace.utils.helpers import (
    format_span_id,
    ipv4_to_int,
    ipv4_to_string,
    parse_span_id,
    to_signed_64,
    to_unsigned_64,
)


def test_span_id_value_equality():
    assert SpanId.create(1, 2, 3) == SpanId(trace_id=1, span_id=2, parent_span_id=3)
    assert hash(SpanId.create(1, 2)) == hash(SpanId(1, 2, None))
    assert SpanId.create(5, 5).is_root()
    assert not SpanId.create(5, 6, 5).is_root()


def test_span_id_is_immutable():
    span_id = SpanId.create(1, 2)
    with pytest.raises(AttributeError):
        span_id.trace_id = 3


def test_span_id_str_uses_hex():
    assert str(SpanId.create(255, -1)) == (
        "[trace_id=00000000000000ff, span_id=ffffffffffffffff, parent_span_id=-]"
    )


def test_signed_unsigned_round_trip():
    assert to_signed_64(0xFFFFFFFFFFFFFFFF) == -1
    assert to_unsigned_64(-1) == 0xFFFFFFFFFFFFFFFF
    assert to_signed_64(2**63) == -(2**63)
    assert parse_span_id(format_span_id(-12345)) == -12345


def test_ipv4_conversion():
    assert ipv4_to_int("1.2.3.4") == (1 << 24) | (2 << 16) | (3 << 8) | 4
    assert ipv4_to_string(0x01020304) == "1.2.3.4"
    with pytest.raises(ValueError):
        ipv4_to_int("not-an-ip")


def test_endpoint_normalizes_service_name():
    assert Endpoint.create("Inventory", 1, 80).service_name == "inventory"
    assert Endpoint.create(None, 1).service_name == "unknown"
    assert Endpoint.create("a", 1).with_service_name("B").service_name == "b"


@pytest.mark.parametrize("port", [-1, 65536])
def test_endpoint_rejects_bad_port(port):
    with pytest.raises(ValidationError):
        Endpoint.create("svc", 1, port)


def test_binary_annotation_types():
    assert BinaryAnnotation.create("k", "v").annotation_type == AnnotationType.STRING
    assert BinaryAnnotation.create("k", 3).annotation_type == AnnotationType.I64
    assert BinaryAnnotation.create("k", True).annotation_type == AnnotationType.BOOL


def test_span_to_dict():
    span = Span(trace_id=1, id=2, name="get-user", parent_id=1)
    data = span.to_dict()
    assert data["name"] == "get-user"
    assert data["parent_id"] == "0000000000000001"
    assert data["annotations"] == []
