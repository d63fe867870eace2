"""Descriptor options for the per-method convenience calls.

Each ``with_*`` function returns an Option: a callable that mutates a
RequestDescriptor. Options are applied in the order given, so a later option
overrides an earlier one touching the same field.

    client.post(
        "users/:id/notes",
        with_set_param("id", "42"),
        with_body({"text": "hello"}),
        with_timeout(5),
    )
"""

from __future__ import annotations

import time
from typing import Any, Callable

from courier.body import FormBody
from courier.interceptors import RequestInterceptor, ResponseInterceptor
from courier.models import Cookie, RequestDescriptor
from courier.query_codec import QueryCodec

Option = Callable[[RequestDescriptor], None]


def with_body(body: Any) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.body = body

    return apply


def with_form(values: dict[str, str | list[str]]) -> Option:
    """Send *values* as an application/x-www-form-urlencoded body."""
    form = FormBody.from_mapping(values)

    def apply(d: RequestDescriptor) -> None:
        d.body = form

    return apply


def with_headers(headers: dict[str, str | list[str]]) -> Option:
    """Replace all request headers."""

    def apply(d: RequestDescriptor) -> None:
        d.headers = {k: [v] if isinstance(v, str) else list(v) for k, v in headers.items()}

    return apply


def with_query(query: dict[str, str | list[str]]) -> Option:
    """Replace the whole query."""

    def apply(d: RequestDescriptor) -> None:
        d.query = {k: [v] if isinstance(v, str) else list(v) for k, v in query.items()}

    return apply


def with_params(params: dict[str, str]) -> Option:
    """Replace all path parameters."""

    def apply(d: RequestDescriptor) -> None:
        d.params = dict(params)

    return apply


def with_cookies(cookies: dict[str, str]) -> Option:
    """Replace all request cookies."""

    def apply(d: RequestDescriptor) -> None:
        d.cookies = [Cookie(name=k, value=v) for k, v in cookies.items()]

    return apply


def with_timeout(seconds: float) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.timeout = seconds

    return apply


def with_deadline(seconds_from_now: float) -> Option:
    """Abandon the request, redirects included, after *seconds_from_now*."""

    def apply(d: RequestDescriptor) -> None:
        d.deadline = time.monotonic() + seconds_from_now

    return apply


def with_set_query(key: str, value: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.set_query(key, value)

    return apply


def with_set_param(key: str, value: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.set_param(key, value)

    return apply


def with_set_header(name: str, value: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.set_header(name, value)

    return apply


def with_set_cookie(name: str, value: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.set_cookie(name, value)

    return apply


def with_request_interceptor(interceptor: RequestInterceptor) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.append_request_interceptors(interceptor)

    return apply


def with_response_interceptor(interceptor: ResponseInterceptor) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.append_response_interceptors(interceptor)

    return apply


def with_max_redirects(count: int) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.max_redirects = count

    return apply


def with_max_body_length(length: int) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.max_body_length = length

    return apply


def with_query_codec(codec: QueryCodec) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.query_codec = codec

    return apply


def with_base_url(base_url: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.base_url = base_url

    return apply


def with_method(method: str) -> Option:
    def apply(d: RequestDescriptor) -> None:
        d.set_method(method)

    return apply
