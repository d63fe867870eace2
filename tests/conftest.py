"""Pytest configuration and shared helpers for courier tests.

This file provides:
- TrackingStream: a response body stream that counts reads and closes
- RecordingHandler: an httpx.MockTransport handler that records requests
- make_client / stream_response: builders for the in-process transport

No test opens a socket: every Client talks to an httpx.MockTransport.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator

import httpx
import pytest

from courier.client import Client
from courier.models import ClientProfile

Handler = Callable[[httpx.Request], httpx.Response]


class TrackingStream(httpx.SyncByteStream):
    """Response body that records how often it was read and closed."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self.chunks = list(chunks)
        self.reads = 0
        self.closes = 0

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self.chunks:
            self.reads += 1
            yield chunk

    def close(self) -> None:
        self.closes += 1


def stream_response(
    status_code: int = 200,
    body: bytes = b"",
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build a response whose body is still unread, like a real network response.

    Prefer this over ``httpx.Response(content=...)``: httpx reads and decodes
    ``content=`` bodies eagerly, which bypasses the streamed, size-capped read.
    """
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(body))


class RecordingHandler:
    """MockTransport handler that replays queued responses and records requests.

    Usage:
        handler = RecordingHandler(stream_response(200, b"ok"))
        client = make_client(handler)
        client.get("https://example.com/")
        assert handler.requests[0].method == "GET"

    The last queued response is repeated once the queue runs out.
    """

    def __init__(self, *responses: httpx.Response | Handler) -> None:
        self.responses = list(responses) or [stream_response()]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if callable(response) and not isinstance(response, httpx.Response):
            return response(request)
        # A fresh response per call: httpx responses are single-use
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            stream=httpx.ByteStream(b"".join(response.stream)),
        )


def make_client(handler: Handler, debug: bool = False, **profile_fields: Any) -> Client:
    """Client whose transport is an httpx.MockTransport around *handler*."""
    transport = httpx.Client(transport=httpx.MockTransport(handler))
    return Client(ClientProfile(transport=transport, **profile_fields), debug=debug)


@pytest.fixture
def echo_client() -> Client:
    """Client whose server answers every request with its own body and content type."""

    def echo(request: httpx.Request) -> httpx.Response:
        headers = {"Content-Type": request.headers.get("Content-Type", "application/octet-stream")}
        return stream_response(200, request.content, headers)

    return make_client(echo)
