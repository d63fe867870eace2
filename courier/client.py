"""Client - Builds, sends and follows one logical HTTP request.

A Client pairs a ClientProfile with the dispatch pipeline:

    merge profile -> resolve body -> request interceptors -> build URL
    -> send -> (3xx: follow Location) -> read body -> response interceptors

Redirects are followed here, not by httpx: every hop re-sends the same
method, headers, cookies and body to the Location target. The request runs on
the calling thread from start to finish.
"""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable

import httpx

from courier.decoder import read_body
from courier.errors import (
    ConfigurationError,
    InvalidURLError,
    RedirectMissingLocationError,
    RequestTimeoutError,
    TooManyRedirectsError,
    TransportError,
)
from courier.models import ClientProfile, RequestDescriptor
from courier.multipart import MultipartPayload
from courier.options import Option, with_body
from courier.performance import PerformanceRecorder
from courier.response import Response

__version__ = "0.1.0"

USER_AGENT = f"courier/{__version__}"
DEFAULT_ACCEPT_ENCODING = "gzip, br, deflate"
DEFAULT_ACCEPT = "application/json, text/plain, */*"

logger = logging.getLogger(__name__)


def _sanitize_header_value(value: str) -> str:
    """Replace non-ASCII characters with '?'; HTTP header values must be ASCII."""
    return value.encode("ascii", errors="replace").decode("ascii")


def _is_redirect(status_code: int) -> bool:
    return 300 <= status_code < 400


def _set_cookie_header(descriptor: RequestDescriptor, request: httpx.Request) -> None:
    """Cookie header for *request*: the jar's cookies for its URL, then the caller's.

    The caller's part is any Cookie header set on the descriptor followed by
    the descriptor's cookies.
    """
    request.headers.pop("Cookie", None)
    descriptor.transport.cookies.set_cookie_header(request)
    parts = request.headers.get_list("Cookie")
    for name, values in descriptor.headers.items():
        if name.lower() == "cookie":
            parts.extend(_sanitize_header_value(value) for value in values)
    parts.extend(c.header_value() for c in descriptor.cookies)
    if parts:
        request.headers["Cookie"] = "; ".join(parts)


class Client:
    """Executes requests with shared defaults from a ClientProfile.

    Usage:
        with Client(ClientProfile(base_url="api.example.com")) as client:
            resp = client.get("users/:name", with_set_param("name", "octocat"))
            user = resp.json(into=User)

    A Client built without a transport in its profile creates one httpx.Client
    and closes it in close(). A transport supplied by the caller is left open.
    """

    def __init__(self, profile: ClientProfile | None = None, debug: bool = False) -> None:
        """Initialize the client.

        Args:
            profile: Shared defaults. Not copied unless a transport must be added.
            debug: Also log request and response headers at DEBUG level.
        """
        profile = profile or ClientProfile()
        self._owns_transport = profile.transport is None
        if self._owns_transport:
            profile = profile.clone()
            profile.transport = httpx.Client()
        self.profile = profile
        self.debug = debug

    def __enter__(self) -> "Client":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and self.profile.transport is not None:
            self.profile.transport.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def execute(self, descriptor: RequestDescriptor) -> Response:
        """Execute *descriptor* and return the final, fully read response.

        Raises:
            ConfigurationError: If the body or URL cannot be built.
            TransportError: If the transport fails; never retried.
            RedirectError: If a redirect has no Location or the limit is exceeded.
            DecodeError: If the body cannot be read or exceeds the size limit.
            Exception: Whatever an interceptor raised, unchanged.
        """
        descriptor.merge_profile(self.profile)
        request = self._prepare_request(descriptor)
        return self._dispatch(descriptor, request)

    def request(self, method: str, url: str, *options: Option) -> Response:
        """Apply *options* to a fresh descriptor and execute it.

        *method* and *url* apply only where no option set them.
        """
        descriptor = RequestDescriptor()
        for option in options:
            option(descriptor)
        if not descriptor.url:
            descriptor.url = url
        if not descriptor.method:
            descriptor.method = method
        return self.execute(descriptor)

    def get(self, url: str, *options: Option) -> Response:
        return self.request("GET", url, *options)

    def post(self, url: str, *options: Option) -> Response:
        return self.request("POST", url, *options)

    def put(self, url: str, *options: Option) -> Response:
        return self.request("PUT", url, *options)

    def patch(self, url: str, *options: Option) -> Response:
        return self.request("PATCH", url, *options)

    def delete(self, url: str, *options: Option) -> Response:
        return self.request("DELETE", url, *options)

    def head(self, url: str, *options: Option) -> Response:
        return self.request("HEAD", url, *options)

    def options(self, url: str, *options: Option) -> Response:
        return self.request("OPTIONS", url, *options)

    def connect(self, url: str, *options: Option) -> Response:
        return self.request("CONNECT", url, *options)

    def trace(self, url: str, *options: Option) -> Response:
        return self.request("TRACE", url, *options)

    def upload(self, url: str, payload: MultipartPayload, *options: Option) -> Response:
        """POST a multipart payload."""
        return self.request("POST", url, with_body(payload), *options)

    # -------------------------------------------------------------------------
    # Request preparation
    # -------------------------------------------------------------------------

    def _prepare_request(self, descriptor: RequestDescriptor) -> httpx.Request:
        """Resolve the body, run request interceptors and build the wire request."""
        original_body = descriptor.body
        resolved = descriptor.get_request_body()

        self.profile.interceptors.invoke_request(descriptor)
        descriptor.interceptors.invoke_request(descriptor)

        # An interceptor may have swapped the body
        if descriptor.body is not original_body:
            resolved = descriptor.get_request_body()

        # Before the header copy so caller-set Content-Type wins
        descriptor.set_content_type_header()

        url = descriptor.build_url()
        if not url:
            raise InvalidURLError(
                f"cannot build request URL from base {descriptor.base_url!r} "
                f"and {descriptor.url!r}"
            )

        timeout: Any = descriptor.timeout if descriptor.timeout > 0 else httpx.USE_CLIENT_DEFAULT
        try:
            request = descriptor.transport.build_request(
                descriptor.method,
                url,
                headers=self._build_headers(descriptor),
                content=resolved.content if resolved is not None else None,
                timeout=timeout,
            )
        except httpx.InvalidURL as e:
            raise InvalidURLError(f"invalid request URL {url!r}: {e}") from e
        except UnicodeEncodeError as e:
            # Header values are sanitized; header names are not
            raise ConfigurationError(
                f"non-ASCII character {e.object[e.start:e.end]!r} in a header name"
            ) from e

        _set_cookie_header(descriptor, request)
        return request

    def _build_headers(self, descriptor: RequestDescriptor) -> list[tuple[str, str]]:
        headers = [
            (name, _sanitize_header_value(value))
            for name, values in descriptor.headers.items()
            for value in values
        ]
        present = {name.lower() for name, _ in headers}
        if "user-agent" not in present:
            headers.append(("User-Agent", USER_AGENT))
        if "accept-encoding" not in present:
            headers.append(("Accept-Encoding", DEFAULT_ACCEPT_ENCODING))
        if "accept" not in present:
            headers.append(("Accept", DEFAULT_ACCEPT))
        return headers

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _dispatch(self, descriptor: RequestDescriptor, request: httpx.Request) -> Response:
        """Send *request*, following redirects until a final response arrives."""
        trace = descriptor.performance_trace
        redirects = 0

        while True:
            recorder = trace.start_attempt()
            raw = self._send(descriptor, request, recorder)

            if _is_redirect(raw.status_code):
                location = raw.headers.get("Location")
                raw.close()
                if not location:
                    raise RedirectMissingLocationError(raw.status_code)

                redirects += 1
                if descriptor.max_redirects > 0 and redirects > descriptor.max_redirects:
                    raise TooManyRedirectsError(descriptor.max_redirects)

                request = self._redirect_request(descriptor, request, location)
                logger.debug(
                    "redirect %d: %s -> %s (%d)",
                    redirects, raw.request.url, request.url, raw.status_code,
                )
                continue

            body = read_body(raw, descriptor.max_body_length)
            response = Response.from_httpx(raw, body, descriptor, recorder)

            self.profile.interceptors.invoke_response(response)
            descriptor.interceptors.invoke_response(response)
            return response

    def _send(
        self,
        descriptor: RequestDescriptor,
        request: httpx.Request,
        recorder: PerformanceRecorder,
    ) -> httpx.Response:
        """One transport round trip. Returns the response with its body unread."""
        self._apply_deadline(descriptor, request)
        request.extensions["trace"] = recorder.trace

        logger.debug("sending %s %s", request.method, request.url)
        if self.debug:
            self._log_headers("request", request.headers)

        try:
            response = descriptor.transport.send(request, stream=True, follow_redirects=False)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"request timeout: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"request error: {e}") from e
        except httpx.StreamError as e:
            # e.g. a one-shot body stream re-sent on a redirect
            raise TransportError(f"request body error: {e}") from e
        finally:
            recorder.record()

        logger.debug(
            "received %d from %s in %.3fs",
            response.status_code, request.url, recorder.response_time or 0.0,
        )
        if self.debug:
            self._log_headers("response", response.headers)
        return response

    def _apply_deadline(self, descriptor: RequestDescriptor, request: httpx.Request) -> None:
        """Cap every timeout phase at the time left before the deadline."""
        if descriptor.deadline is None:
            return
        remaining = descriptor.deadline - time.monotonic()
        if remaining <= 0:
            raise RequestTimeoutError(f"deadline exceeded before sending {request.url}")

        current = request.extensions.get("timeout") or {}
        request.extensions["timeout"] = {
            phase: remaining if current.get(phase) is None else min(current[phase], remaining)
            for phase in ("connect", "read", "write", "pool")
        }

    def _redirect_request(
        self,
        descriptor: RequestDescriptor,
        previous: httpx.Request,
        location: str,
    ) -> httpx.Request:
        """Clone *previous* onto *location*: same method, headers and body.

        The Cookie header is rebuilt for the new URL, so cookies the jar took
        from the redirect response are sent on this hop.
        """
        url = previous.url.join(location)
        headers = previous.headers.copy()
        headers["Host"] = url.netloc.decode("ascii")
        request = httpx.Request(
            previous.method,
            url,
            headers=headers,
            stream=previous.stream,
            extensions=dict(previous.extensions),
        )
        _set_cookie_header(descriptor, request)
        return request

    def _log_headers(self, kind: str, headers: httpx.Headers) -> None:
        # raw keeps the names as sent; multi_items() lower-cases them
        for name, value in headers.raw:
            logger.debug(
                "  %s header %s: %s", kind, name.decode("latin-1"), value.decode("latin-1")
            )


# -----------------------------------------------------------------------------
# Module-level default client
# -----------------------------------------------------------------------------

_default_client: Client | None = None
_default_lock = Lock()


def default_client() -> Client:
    """The process-wide Client used by the module-level helpers, created on first use."""
    global _default_client
    with _default_lock:
        if _default_client is None:
            _default_client = Client()
        return _default_client


def _bound(method: str) -> Callable[..., Response]:
    def call(url: str, *options: Option) -> Response:
        return default_client().request(method, url, *options)

    call.__name__ = method.lower()
    call.__doc__ = f"{method} *url* with the default client."
    return call


get = _bound("GET")
post = _bound("POST")
put = _bound("PUT")
patch = _bound("PATCH")
delete = _bound("DELETE")
head = _bound("HEAD")
options = _bound("OPTIONS")


def request(descriptor: RequestDescriptor) -> Response:
    """Execute *descriptor* with the default client."""
    return default_client().execute(descriptor)
