"""Request configuration models.

All models use Pydantic v2. ClientProfile holds long-lived defaults shared by
every request a Client makes; RequestDescriptor holds the configuration of one
logical request and is owned by it. Header and query values are arrays to
support repeated names. Timeouts are seconds, with 0 meaning "inherit".
"""

from __future__ import annotations

from http.cookiejar import CookieJar
from typing import Any, Callable

import httpx
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from courier import codecs
from courier.body import ResolvedBody, default_content_type, resolve_body, to_body
from courier.interceptors import InterceptorChain, RequestInterceptor, ResponseInterceptor
from courier.performance import PerformanceTrace
from courier.query_codec import QueryCodec, encode_query

CONTENT_TYPE = "Content-Type"

Marshal = Callable[[Any], bytes]
Unmarshal = Callable[[bytes], Any]


# =============================================================================
# Helpers
# =============================================================================


def _find_key(mapping: dict[str, Any], name: str) -> str | None:
    """Return the key of *mapping* matching *name* case-insensitively."""
    lower = name.lower()
    for key in mapping:
        if key.lower() == lower:
            return key
    return None


def _as_multimap(value: Any) -> Any:
    """Accept ``{"k": "v"}`` as shorthand for ``{"k": ["v"]}``."""
    if isinstance(value, dict):
        return {k: [v] if isinstance(v, str) else v for k, v in value.items()}
    return value


def _as_cookie_list(value: Any) -> Any:
    """Accept ``{"name": "value"}`` as shorthand for a cookie list."""
    if isinstance(value, dict):
        return [{"name": k, "value": v} for k, v in value.items()]
    return value


class Cookie(BaseModel):
    """A cookie sent with a request."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(description="Cookie name")
    value: str = Field(description="Cookie value")

    def header_value(self) -> str:
        return f"{self.name}={self.value}"


# =============================================================================
# Client Profile
# =============================================================================


class ClientProfile(BaseModel):
    """Shared defaults applied to every request of a Client.

    A profile is read concurrently by in-flight requests and must only be
    changed through clone() and modify. Interceptors may be registered through
    the append/prepend methods, preferably before the first request.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    base_url: str = Field(default="", description="Base URL for relative request URLs")
    headers: dict[str, list[str]] = Field(default_factory=dict, description="Default headers")
    cookies: list[Cookie] = Field(default_factory=list, description="Default cookies")
    cookie_jar: CookieJar | None = Field(
        default=None, description="Persistent cookie store installed on the transport"
    )
    params: dict[str, str] = Field(default_factory=dict, description="Default path parameters")
    query: dict[str, list[str]] = Field(default_factory=dict, description="Default query")
    query_codec: QueryCodec | None = Field(default=None, description="Default query encoding")
    interceptors: InterceptorChain = Field(default_factory=InterceptorChain)
    max_body_length: int = Field(default=0, ge=0, description="Response size limit, 0 = unlimited")
    max_redirects: int = Field(default=0, ge=0, description="Redirect limit, 0 = unlimited")
    transport: httpx.Client | None = Field(default=None, description="Shared HTTP transport")
    timeout: float = Field(default=0.0, ge=0, description="Default timeout in seconds")
    json_marshal: Marshal | None = None
    json_unmarshal: Unmarshal | None = None
    xml_marshal: Marshal | None = None
    xml_unmarshal: Unmarshal | None = None

    @field_validator("headers", "query", mode="before")
    @classmethod
    def normalize_multimaps(cls, v: Any) -> Any:
        return _as_multimap(v)

    @field_validator("cookies", mode="before")
    @classmethod
    def normalize_cookies(cls, v: Any) -> Any:
        return _as_cookie_list(v)

    def clone(self) -> "ClientProfile":
        """Copy with independent headers, cookies, params, query and interceptors.

        The transport, cookie jar, query codec and codec functions are shared.
        """
        return self.model_copy(
            update={
                "headers": {k: list(v) for k, v in self.headers.items()},
                "cookies": [c.model_copy() for c in self.cookies],
                "params": dict(self.params),
                "query": {k: list(v) for k, v in self.query.items()},
                "interceptors": self.interceptors.copy(),
            }
        )

    def append_request_interceptors(self, *interceptors: RequestInterceptor) -> "ClientProfile":
        self.interceptors.append_request(*interceptors)
        return self

    def prepend_request_interceptors(self, *interceptors: RequestInterceptor) -> "ClientProfile":
        self.interceptors.prepend_request(*interceptors)
        return self

    def append_response_interceptors(self, *interceptors: ResponseInterceptor) -> "ClientProfile":
        self.interceptors.append_response(*interceptors)
        return self

    def prepend_response_interceptors(self, *interceptors: ResponseInterceptor) -> "ClientProfile":
        self.interceptors.prepend_response(*interceptors)
        return self


# =============================================================================
# Request Descriptor
# =============================================================================


class RequestDescriptor(BaseModel):
    """Configuration for one logical request.

    ``url`` may be absolute or a path template relative to ``base_url``.
    ``:name`` tokens in the URL are replaced from ``params``; a token with no
    matching parameter stays in the URL verbatim.

    ``body`` accepts any value courier.body.to_body() can classify.
    ``deadline`` is an absolute time.monotonic() value after which the request
    is abandoned.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    url: str = Field(default="", description="Absolute URL or path template")
    base_url: str = Field(default="", description="Overrides the profile base URL")
    method: str = Field(default="", description="HTTP method, GET when unset")
    params: dict[str, str] = Field(default_factory=dict, description="Path parameters")
    query: dict[str, list[str]] = Field(default_factory=dict, description="Query parameters")
    headers: dict[str, list[str]] = Field(default_factory=dict, description="Request headers")
    cookies: list[Cookie] = Field(default_factory=list, description="Request cookies")
    body: Any = Field(default=None, description="Request body value")
    timeout: float = Field(default=0.0, ge=0, description="Timeout in seconds, 0 = inherit")
    deadline: float | None = Field(default=None, description="time.monotonic() deadline")
    interceptors: InterceptorChain = Field(default_factory=InterceptorChain)
    max_body_length: int = Field(default=0, ge=0)
    max_redirects: int = Field(default=0, ge=0)
    query_codec: QueryCodec | None = None
    transport: httpx.Client | None = None
    json_marshal: Marshal | None = None
    json_unmarshal: Unmarshal | None = None
    xml_marshal: Marshal | None = None
    xml_unmarshal: Unmarshal | None = None

    _trace: PerformanceTrace | None = PrivateAttr(default=None)

    @field_validator("headers", "query", mode="before")
    @classmethod
    def normalize_multimaps(cls, v: Any) -> Any:
        return _as_multimap(v)

    @field_validator("cookies", mode="before")
    @classmethod
    def normalize_cookies(cls, v: Any) -> Any:
        return _as_cookie_list(v)

    # -------------------------------------------------------------------------
    # URL construction
    # -------------------------------------------------------------------------

    def build_url(self) -> str:
        """Build the final URL: base + path, path parameters, then query.

        An absolute ``url`` ignores the base URL. A base URL without a scheme
        gets ``https://``. A URL that fails to parse yields ``""``; the
        dispatcher rejects an empty URL before sending.
        """
        base_url = self.base_url
        if not base_url or "://" in self.url:
            return self._append_query_to_url(self.url)

        base_url = base_url.rstrip("/") + "/"
        path = self.url.lstrip("/")
        if "://" not in base_url:
            base_url = "https://" + base_url

        try:
            url = str(httpx.URL(base_url + path))
        except httpx.InvalidURL:
            return ""

        return self._append_query_to_url(url)

    def build_query(self) -> str:
        """Encode ``query`` with the configured codec, or alphabetically by default."""
        if not self.query:
            return ""
        if self.query_codec is not None:
            return self.query_codec.encode_values(self.query)
        return encode_query(self.query)

    def _append_query_to_url(self, url: str) -> str:
        # Plain substring replacement: ":id" also matches inside ":identity".
        for key, value in self.params.items():
            url = url.replace(f":{key}", value)

        qs = self.build_query()
        if not qs:
            return url
        return url + ("&" if "?" in url else "?") + qs

    # -------------------------------------------------------------------------
    # Fluent setters
    # -------------------------------------------------------------------------

    def set_url(self, url: str) -> "RequestDescriptor":
        self.url = url
        return self

    def set_method(self, method: str) -> "RequestDescriptor":
        self.method = method.upper()
        return self

    def set_query(self, key: str, value: str) -> "RequestDescriptor":
        self.query[key] = [value]
        return self

    def set_param(self, key: str, value: str) -> "RequestDescriptor":
        self.params[key] = value
        return self

    def set_header(self, name: str, value: str) -> "RequestDescriptor":
        """Replace every value of header *name* (case-insensitive) with *value*."""
        existing = _find_key(self.headers, name)
        if existing is not None:
            del self.headers[existing]
        self.headers[name] = [value]
        return self

    def get_header(self, name: str) -> str | None:
        """First value of header *name*, or None."""
        key = _find_key(self.headers, name)
        if key is None or not self.headers[key]:
            return None
        return self.headers[key][0]

    def set_body(self, body: Any) -> "RequestDescriptor":
        self.body = body
        return self

    def set_cookie(self, name: str, value: str) -> "RequestDescriptor":
        self.cookies.append(Cookie(name=name, value=value))
        return self

    def append_request_interceptors(self, *interceptors: RequestInterceptor) -> "RequestDescriptor":
        self.interceptors.append_request(*interceptors)
        return self

    def prepend_request_interceptors(self, *interceptors: RequestInterceptor) -> "RequestDescriptor":
        self.interceptors.prepend_request(*interceptors)
        return self

    def append_response_interceptors(self, *interceptors: ResponseInterceptor) -> "RequestDescriptor":
        self.interceptors.append_response(*interceptors)
        return self

    def prepend_response_interceptors(self, *interceptors: ResponseInterceptor) -> "RequestDescriptor":
        self.interceptors.prepend_response(*interceptors)
        return self

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    def get_request_body(self) -> ResolvedBody | None:
        """Resolve ``body`` to wire content; None when there is no body.

        A multipart payload writes its own Content-Type header.
        """
        body = to_body(self.body)
        if body is None:
            return None

        resolved = resolve_body(
            body,
            self.get_header(CONTENT_TYPE),
            self.json_marshal or codecs.json_marshal,
            self.xml_marshal or codecs.xml_marshal,
        )
        if resolved.content_type is not None:
            self.set_header(CONTENT_TYPE, resolved.content_type)
        return resolved

    def set_content_type_header(self) -> None:
        """Default the Content-Type from the body variant unless one is set."""
        if self.get_header(CONTENT_TYPE):
            return
        body = to_body(self.body)
        if body is None:
            return
        content_type = default_content_type(body)
        if content_type is not None:
            self.set_header(CONTENT_TYPE, content_type)

    # -------------------------------------------------------------------------
    # Profile merge
    # -------------------------------------------------------------------------

    def merge_profile(self, profile: ClientProfile) -> "RequestDescriptor":
        """Fill unset fields from *profile*. Values set on the request always win.

        Installs the profile cookie jar on the transport and a fresh
        performance trace on this request.
        """
        if not self.base_url:
            self.base_url = profile.base_url
        if self.transport is None:
            self.transport = profile.transport
        if self.timeout == 0:
            self.timeout = profile.timeout
        if (
            profile.cookie_jar is not None
            and self.transport is not None
            and self.transport.cookies.jar is not profile.cookie_jar
        ):
            self.transport.cookies = profile.cookie_jar

        self.method = (self.method or "GET").upper()

        if self.query_codec is None:
            self.query_codec = profile.query_codec
        if self.max_body_length == 0:
            self.max_body_length = profile.max_body_length
        if self.max_redirects == 0:
            self.max_redirects = profile.max_redirects

        for key, value in profile.params.items():
            self.params.setdefault(key, value)
        for key, values in profile.query.items():
            if key not in self.query:
                self.query[key] = list(values)

        for name, values in profile.headers.items():
            if _find_key(self.headers, name) is None:
                self.headers[name] = list(values)
        own_cookies = {c.name for c in self.cookies}
        self.cookies = [
            c.model_copy() for c in profile.cookies if c.name not in own_cookies
        ] + self.cookies

        self.json_marshal = self.json_marshal or profile.json_marshal or codecs.json_marshal
        self.json_unmarshal = self.json_unmarshal or profile.json_unmarshal or codecs.json_unmarshal
        self.xml_marshal = self.xml_marshal or profile.xml_marshal or codecs.xml_marshal
        self.xml_unmarshal = self.xml_unmarshal or profile.xml_unmarshal or codecs.xml_unmarshal

        self._trace = PerformanceTrace()
        return self

    @property
    def performance_trace(self) -> PerformanceTrace | None:
        """Attempts recorded for this request; None until merged."""
        return self._trace
