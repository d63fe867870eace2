"""Tests for per-attempt timing metrics."""

from datetime import datetime

from courier.performance import PerformanceRecorder, PerformanceTrace


def replay(recorder: PerformanceRecorder, *events: str) -> None:
    for event in events:
        recorder.trace(event, {})


NEW_CONNECTION = (
    "connection.connect_tcp.started",
    "connection.connect_tcp.complete",
    "connection.start_tls.started",
    "connection.start_tls.complete",
    "http11.send_request_headers.started",
    "http11.send_request_body.complete",
    "http11.receive_response_headers.complete",
)

REUSED_CONNECTION = (
    "http11.send_request_headers.started",
    "http11.send_request_body.complete",
    "http11.receive_response_headers.complete",
)


class TestPerformanceRecorder:
    def test_new_connection_phases(self) -> None:
        recorder = PerformanceRecorder()
        recorder.start()
        replay(recorder, *NEW_CONNECTION)
        recorder.record()

        assert isinstance(recorder.started_at, datetime)
        assert recorder.connect_time is not None and recorder.connect_time >= 0
        assert recorder.tls_time is not None and recorder.tls_time >= 0
        assert recorder.request_sent is not None
        assert recorder.time_to_first_byte is not None
        assert recorder.response_time is not None
        assert not recorder.connection_reused

    def test_reused_connection(self) -> None:
        recorder = PerformanceRecorder()
        recorder.start()
        replay(recorder, *REUSED_CONNECTION)
        assert recorder.connection_reused
        assert recorder.connect_time is None
        assert recorder.tls_time is None

    def test_http2_events(self) -> None:
        recorder = PerformanceRecorder()
        recorder.start()
        replay(recorder, "http2.send_request_body.complete", "http2.receive_response_headers.complete")
        assert recorder.request_sent is not None
        assert recorder.first_byte is not None

    def test_first_byte_recorded_once(self) -> None:
        recorder = PerformanceRecorder()
        replay(recorder, "http11.receive_response_headers.complete")
        first = recorder.first_byte
        replay(recorder, "http11.receive_response_headers.complete")
        assert recorder.first_byte == first

    def test_unstarted_recorder_reports_nothing(self) -> None:
        recorder = PerformanceRecorder()
        recorder.record()
        assert recorder.response_time is None
        assert recorder.time_to_first_byte is None
        assert not recorder.connection_reused

    def test_record_keeps_first_measurement(self) -> None:
        recorder = PerformanceRecorder()
        recorder.start()
        recorder.record()
        first = recorder.response_time
        recorder.record()
        assert recorder.response_time == first

    def test_unrelated_events_ignored(self) -> None:
        recorder = PerformanceRecorder()
        replay(recorder, "connection.close.started", "http11.response_closed.complete")
        assert recorder.connect_start is None
        assert recorder.first_byte is None


class TestPerformanceTrace:
    def test_attempts_started_in_order(self) -> None:
        trace = PerformanceTrace()
        first = trace.start_attempt()
        second = trace.start_attempt()
        assert trace.attempts == [first, second]
        assert first.started_at is not None

    def test_total_time_sums_attempts(self) -> None:
        trace = PerformanceTrace()
        for _ in range(3):
            trace.start_attempt().record()
        assert trace.total_time == sum(a.response_time for a in trace.attempts)

    def test_empty_trace(self) -> None:
        assert PerformanceTrace().total_time == 0.0
