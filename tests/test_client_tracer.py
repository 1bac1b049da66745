"""Client tracer: id derivation, sampling, client send/receive and span handoff."""

import pytest

from spantrace.context.state import SamplingDecision, ServerSpan
from spantrace.errors import ValidationError
from spantrace.tracer.span import (
    CLIENT_RECV,
    CLIENT_SEND,
    SERVER_ADDR,
    Annotation,
    AnnotationType,
    BinaryAnnotation,
    Span,
)
from spantrace.tracer.span_id import SpanId

from conftest import RecordingFilter


class TestIdDerivation:
    def test_root_span_when_no_parent(self, tracer, state):
        span_id = tracer.start_new_span("get-user")

        assert span_id == SpanId(trace_id=42, span_id=42, parent_span_id=None)
        assert span_id.is_root()
        current = state.get_current_client_span()
        assert current.trace_id == current.id == 42
        assert current.parent_id is None

    def test_local_span_is_parent(self, tracer, state):
        state.set_current_local_span(Span(trace_id=100, id=55, name="local-work"))

        span_id = tracer.start_new_span("get-user")

        assert span_id == SpanId(trace_id=100, span_id=42, parent_span_id=55)

    def test_server_span_is_parent_without_local_span(self, tracer, state):
        server = Span(trace_id=7, id=8, name="handle")
        state.set_current_server_span(ServerSpan(span=server, sample=SamplingDecision.SAMPLED))

        span_id = tracer.start_new_span("get-user")

        assert span_id.trace_id == 7
        assert span_id.parent_span_id == 8
        assert span_id.span_id == 42

    def test_local_span_wins_over_server_span(self, tracer, state):
        state.set_current_server_span(ServerSpan(span=Span(trace_id=7, id=8, name="handle")))
        state.set_current_local_span(Span(trace_id=100, id=55, name="local-work"))

        span_id = tracer.start_new_span("get-user")

        assert span_id.trace_id == 100
        assert span_id.parent_span_id == 55

    def test_fresh_id_per_span(self, tracer, random_source):
        first = tracer.start_new_span("a")
        tracer.set_client_received()
        second = tracer.start_new_span("b")

        assert first.span_id == 42
        assert second.span_id == 43
        assert random_source.calls == 2


class TestSampling:
    def test_not_sampled_returns_none_and_clears_slots(self, make_tracer, state, random_source):
        never = RecordingFilter(True)
        tracer = make_tracer([never])
        state.set_current_client_span(Span(trace_id=1, id=1, name="stale"))
        state.set_current_client_service_name("stale-service")
        state.set_current_server_span(ServerSpan.NOT_SAMPLED)

        assert tracer.start_new_span("get-user") is None
        assert state.get_current_client_span() is None
        assert state.get_current_client_service_name() is None
        # No id drawn and no filter consulted
        assert random_source.calls == 0
        assert never.calls == []

    def test_not_sampled_is_sticky(self, tracer, state, collector):
        state.set_current_server_span(ServerSpan.NOT_SAMPLED)

        for name in ("a", "b", "c"):
            assert tracer.start_new_span(name) is None
            assert state.get_current_client_span() is None
            assert state.get_current_client_service_name() is None

        tracer.set_client_sent()
        tracer.set_client_received()
        assert collector.spans == []

    def test_sampled_skips_filters(self, make_tracer, state):
        reject = RecordingFilter(False)
        tracer = make_tracer([reject])
        state.set_current_server_span(ServerSpan(span=None, sample=SamplingDecision.SAMPLED))

        assert tracer.start_new_span("get-user") is not None
        assert reject.calls == []

    def test_undecided_runs_filters_with_candidate_id(self, make_tracer):
        accept = RecordingFilter(True)
        tracer = make_tracer([accept])

        span_id = tracer.start_new_span("get-user")

        assert accept.calls == [(span_id.span_id, "get-user")]

    def test_filter_rejection_short_circuits(self, make_tracer, state):
        f1 = RecordingFilter(False)
        f2 = RecordingFilter(True)
        tracer = make_tracer([f1, f2])
        state.set_current_client_service_name("leftover")

        assert tracer.start_new_span("get-user") is None
        assert len(f1.calls) == 1
        assert f2.calls == []
        assert state.get_current_client_span() is None
        assert state.get_current_client_service_name() is None

    def test_all_filters_accept(self, make_tracer, state):
        f1 = RecordingFilter(True)
        f2 = RecordingFilter(True)
        tracer = make_tracer([f1, f2])

        assert tracer.start_new_span("get-user") is not None
        assert len(f1.calls) == len(f2.calls) == 1
        assert state.get_current_client_span().name == "get-user"

    @pytest.mark.parametrize("name", [None, ""])
    def test_empty_request_name_rejected(self, tracer, state, name):
        with pytest.raises(ValidationError):
            tracer.start_new_span(name)
        assert state.get_current_client_span() is None


class TestClientSentAndReceived:
    def test_full_lifecycle(self, tracer, state, collector):
        span_id = tracer.start_new_span("get-user")
        tracer.set_client_sent()
        tracer.set_client_received()

        assert span_id.span_id == span_id.trace_id
        assert len(collector.spans) == 1
        span = collector.spans[0]
        assert span.name == "get-user"
        assert [a.value for a in span.annotations] == [CLIENT_SEND, CLIENT_RECV]
        assert span.timestamp == span.annotations[0].timestamp
        assert span.duration == span.annotations[1].timestamp - span.annotations[0].timestamp
        assert state.get_current_client_span() is None
        assert state.get_current_client_service_name() is None

    def test_annotations_use_local_endpoint(self, tracer, collector, endpoint):
        tracer.start_new_span("get-user")
        tracer.set_client_sent()
        tracer.set_client_received()

        hosts = {a.host for a in collector.spans[0].annotations}
        assert hosts == {endpoint}

    def test_service_name_override(self, tracer, collector, endpoint):
        tracer.start_new_span("get-user")
        tracer.set_current_service_name("Gateway")
        tracer.set_client_sent()
        tracer.set_client_received()

        host = collector.spans[0].annotations[0].host
        assert host.service_name == "gateway"
        assert host.ipv4 == endpoint.ipv4
        assert host.port == endpoint.port

    def test_client_sent_with_server_address(self, tracer, collector):
        tracer.start_new_span("get-user")
        tracer.set_client_sent(ipv4=0x01020304, port=8080, service_name="inventory")
        tracer.set_client_received()

        span = collector.spans[0]
        address = span.get_binary_annotation(SERVER_ADDR)
        assert address.annotation_type == AnnotationType.BOOL
        assert address.value is True
        assert address.host.address == "1.2.3.4"
        assert address.host.port == 8080
        assert address.host.service_name == "inventory"

        # Address is attached before the send annotation
        kinds = [(type(e), getattr(e, "key", None) or getattr(e, "value", None)) for e in span.events]
        assert kinds[:2] == [(BinaryAnnotation, SERVER_ADDR), (Annotation, CLIENT_SEND)]

    def test_client_sent_unknown_server_service(self, tracer, collector):
        tracer.start_new_span("get-user")
        tracer.set_client_sent(ipv4=0x01020304, port=0, service_name=None)
        tracer.set_client_received()

        address = collector.spans[0].get_binary_annotation(SERVER_ADDR)
        assert address.host.service_name == "unknown"
        assert address.host.port == 0

    def test_close_once(self, tracer, collector):
        tracer.start_new_span("get-user")
        tracer.set_client_sent()
        tracer.set_client_received()
        tracer.set_client_received()

        assert len(collector.spans) == 1

    def test_no_span_is_noop(self, tracer, collector, state):
        tracer.set_client_sent()
        tracer.set_client_sent(ipv4=0x01020304, port=80, service_name="inventory")
        tracer.set_client_received()

        assert collector.spans == []
        assert state.get_current_client_span() is None

    def test_start_new_span_overwrites_open_span(self, tracer, state, collector):
        tracer.start_new_span("first")
        tracer.start_new_span("second")
        tracer.set_client_sent()
        tracer.set_client_received()

        assert [s.name for s in collector.spans] == ["second"]

    def test_custom_annotations(self, tracer, collector):
        tracer.start_new_span("get-user")
        tracer.set_client_sent()
        tracer.submit_annotation("retry")
        tracer.submit_binary_annotation("http.status", 200)
        tracer.submit_binary_annotation("http.path", "/users/1")
        tracer.set_client_received()

        span = collector.spans[0]
        assert [a.value for a in span.annotations] == [CLIENT_SEND, "retry", CLIENT_RECV]
        assert span.get_binary_annotation("http.status").annotation_type == AnnotationType.I64
        assert span.get_binary_annotation("http.path").value == "/users/1"

    def test_failing_collector_still_closes_span(self, make_tracer, state, collector, caplog):
        def boom(span):
            raise RuntimeError("collector down")

        collector.collect = boom
        tracer = make_tracer()
        tracer.start_new_span("get-user")
        tracer.set_client_sent()

        with caplog.at_level("WARNING", logger="spantrace"):
            tracer.set_client_received()

        assert state.get_current_client_span() is None
        assert "collector down" in caplog.text
