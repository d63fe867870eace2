"""Error taxonomy for the request pipeline.

Every failure the pipeline raises derives from CourierError. Exceptions raised
by interceptors are the one exception to that rule: they propagate unwrapped so
callers can catch their own types.
"""

from __future__ import annotations


class CourierError(Exception):
    """Base class for courier errors."""


# -----------------------------------------------------------------------------
# Configuration errors
# -----------------------------------------------------------------------------


class ConfigurationError(CourierError):
    """Raised when a request cannot be built from its configuration."""


class UnsupportedBodyError(ConfigurationError):
    """Raised when the body value has no known encoding."""

    def __init__(self, body: object) -> None:
        super().__init__(f"request data type is not supported: {type(body).__name__}")
        self.body = body


class InvalidURLError(ConfigurationError):
    """Raised when the final request URL is empty or malformed."""


class MarshalError(ConfigurationError):
    """Raised when a structured body cannot be marshalled."""


class MultipartError(ConfigurationError):
    """Raised when a multipart payload collected errors while being built."""


class ConfigError(ConfigurationError):
    """Raised when loading a profile file fails."""


# -----------------------------------------------------------------------------
# Transport errors
# -----------------------------------------------------------------------------


class TransportError(CourierError):
    """Raised when the transport fails (connection error, protocol error, etc.)."""


class RequestTimeoutError(TransportError):
    """Raised when the transport times out or the request deadline expired."""


# -----------------------------------------------------------------------------
# Redirect errors
# -----------------------------------------------------------------------------


class RedirectError(CourierError):
    """Base class for redirect protocol errors."""


class RedirectMissingLocationError(RedirectError):
    """Raised when a 3xx response carries no Location header."""

    def __init__(self, status_code: int) -> None:
        super().__init__("redirect missing location header")
        self.status_code = status_code


class TooManyRedirectsError(RedirectError):
    """Raised when the redirect counter exceeds the configured maximum."""

    def __init__(self, max_redirects: int) -> None:
        super().__init__(f"maximum number of redirects ({max_redirects}) exceeded")
        self.max_redirects = max_redirects


# -----------------------------------------------------------------------------
# Decode errors
# -----------------------------------------------------------------------------


class DecodeError(CourierError):
    """Raised when the response body cannot be read or decompressed."""


class BodyTooLargeError(DecodeError):
    """Raised when the response body exceeds the configured maximum length."""

    def __init__(self, max_body_length: int) -> None:
        super().__init__(f"response body exceeds the maximum length of {max_body_length}")
        self.max_body_length = max_body_length
