"""Ordered request/response hooks.

A request interceptor receives the RequestDescriptor before dispatch and may
mutate it. A response interceptor receives the materialized Response and may
inspect it or write to its annotations. An interceptor fails by raising; the
first failure stops the chain and its exception propagates unchanged.

Append and prepend are serialized by a lock, and invocation iterates over a
snapshot taken under that lock. Registering interceptors while requests are in
flight is still the caller's responsibility: an in-flight invocation does not
see the change, and no ordering is promised between the two.
"""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from courier.models import RequestDescriptor
    from courier.response import Response

RequestInterceptor = Callable[["RequestDescriptor"], None]
ResponseInterceptor = Callable[["Response"], None]


class InterceptorChain:
    """Request-phase and response-phase interceptor lists for one owner."""

    def __init__(
        self,
        request: list[RequestInterceptor] | None = None,
        response: list[ResponseInterceptor] | None = None,
    ) -> None:
        self._request: list[RequestInterceptor] = list(request or [])
        self._response: list[ResponseInterceptor] = list(response or [])
        self._lock = Lock()

    @property
    def request_interceptors(self) -> tuple[RequestInterceptor, ...]:
        with self._lock:
            return tuple(self._request)

    @property
    def response_interceptors(self) -> tuple[ResponseInterceptor, ...]:
        with self._lock:
            return tuple(self._response)

    def append_request(self, *interceptors: RequestInterceptor) -> None:
        with self._lock:
            self._request = self._request + list(interceptors)

    def prepend_request(self, *interceptors: RequestInterceptor) -> None:
        with self._lock:
            self._request = list(interceptors) + self._request

    def append_response(self, *interceptors: ResponseInterceptor) -> None:
        with self._lock:
            self._response = self._response + list(interceptors)

    def prepend_response(self, *interceptors: ResponseInterceptor) -> None:
        with self._lock:
            self._response = list(interceptors) + self._response

    def invoke_request(self, descriptor: "RequestDescriptor") -> None:
        """Run request interceptors in registration order; stop at the first raise."""
        for interceptor in self.request_interceptors:
            interceptor(descriptor)

    def invoke_response(self, response: "Response") -> None:
        """Run response interceptors in registration order; stop at the first raise."""
        for interceptor in self.response_interceptors:
            interceptor(response)

    def copy(self) -> "InterceptorChain":
        return InterceptorChain(list(self.request_interceptors), list(self.response_interceptors))

    def __len__(self) -> int:
        with self._lock:
            return len(self._request) + len(self._response)
