"""Timing and connection-reuse metrics for transport round trips.

A PerformanceRecorder covers one attempt (one transport call). It is fed by
httpcore trace events, delivered through the request's ``"trace"`` extension,
and by the dispatcher marking the start and the arrival of response headers.
Timestamps are ``time.perf_counter()`` values; durations are seconds.

httpcore does not report DNS resolution separately, so the connect phase
includes it.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any


class PerformanceRecorder:
    """Metrics for a single transport round trip."""

    def __init__(self) -> None:
        self.started_at: datetime | None = None
        self.response_time: float | None = None
        self.connect_start: float | None = None
        self.connect_done: float | None = None
        self.tls_start: float | None = None
        self.tls_done: float | None = None
        self.request_sent: float | None = None
        self.first_byte: float | None = None
        self._start: float | None = None

    def start(self) -> None:
        self.started_at = datetime.now(timezone.utc)
        self._start = time.perf_counter()

    def record(self) -> None:
        """Capture the response duration; called once the transport returned."""
        if self._start is not None and self.response_time is None:
            self.response_time = time.perf_counter() - self._start

    def trace(self, event_name: str, info: dict[str, Any]) -> None:
        """httpcore trace callback."""
        now = time.perf_counter()
        if event_name == "connection.connect_tcp.started":
            self.connect_start = now
        elif event_name == "connection.connect_tcp.complete":
            self.connect_done = now
        elif event_name == "connection.start_tls.started":
            self.tls_start = now
        elif event_name == "connection.start_tls.complete":
            self.tls_done = now
        elif event_name.endswith(".send_request_body.complete"):
            self.request_sent = now
        elif event_name.endswith(".receive_response_headers.complete") and self.first_byte is None:
            self.first_byte = now

    @property
    def connection_reused(self) -> bool:
        """True when the attempt completed without opening a new connection."""
        return self.first_byte is not None and self.connect_start is None

    @property
    def connect_time(self) -> float | None:
        return _span(self.connect_start, self.connect_done)

    @property
    def tls_time(self) -> float | None:
        return _span(self.tls_start, self.tls_done)

    @property
    def time_to_first_byte(self) -> float | None:
        return _span(self._start, self.first_byte)

    def __repr__(self) -> str:
        return (
            f"PerformanceRecorder(response_time={self.response_time!r}, "
            f"connect_time={self.connect_time!r}, tls_time={self.tls_time!r}, "
            f"connection_reused={self.connection_reused!r})"
        )


class PerformanceTrace:
    """All attempts made for one logical request, redirect hops included."""

    def __init__(self) -> None:
        self.attempts: list[PerformanceRecorder] = []

    def start_attempt(self) -> PerformanceRecorder:
        recorder = PerformanceRecorder()
        self.attempts.append(recorder)
        recorder.start()
        return recorder

    @property
    def total_time(self) -> float:
        return sum(a.response_time or 0.0 for a in self.attempts)


def _span(start: float | None, end: float | None) -> float | None:
    if start is None or end is None:
        return None
    return end - start
