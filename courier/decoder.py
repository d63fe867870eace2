"""Response body materialization.

read_body() drains a streamed httpx response into bytes while enforcing the
configured maximum length. httpx undoes the Content-Encoding (gzip, deflate,
br) in iter_bytes(); the limit is applied to the decoded chunks as they
arrive. Encodings httpx does not know are passed through unchanged.
"""

from __future__ import annotations

import logging
from typing import Iterator

import httpx

from courier.errors import BodyTooLargeError, DecodeError

logger = logging.getLogger(__name__)

NO_CONTENT = 204


def expected_length(headers: httpx.Headers) -> int:
    """Declared Content-Length, or 0 when absent or not a number."""
    try:
        return max(int(headers.get("content-length", "")), 0)
    except ValueError:
        return 0


def _body_chunks(response: httpx.Response) -> Iterator[bytes]:
    # A 204 answer to HEAD carries no entity; its bytes are never decompressed
    skip_decoding = response.status_code == NO_CONTENT and response.request.method == "HEAD"
    if skip_decoding and not response.is_stream_consumed:
        return response.iter_raw()
    return response.iter_bytes()


def read_body(response: httpx.Response, max_body_length: int = 0) -> bytes:
    """Read, decompress and return the whole body of a streamed *response*.

    A declared Content-Length above *max_body_length* fails before anything
    is read; the limit also applies to the decompressed bytes as they arrive.
    The response is closed on every path.

    Args:
        response: Response returned by ``httpx.Client.send(..., stream=True)``.
        max_body_length: Maximum body size in bytes, 0 for no limit.

    Raises:
        BodyTooLargeError: If the body exceeds *max_body_length*.
        DecodeError: If decompression or the underlying read fails.
    """
    try:
        size = expected_length(response.headers)
        if max_body_length > 0 and size > max_body_length:
            raise BodyTooLargeError(max_body_length)

        buffer = bytearray()
        try:
            for chunk in _body_chunks(response):
                buffer += chunk
                if max_body_length > 0 and len(buffer) > max_body_length:
                    raise BodyTooLargeError(max_body_length)
        except httpx.DecodingError as e:
            raise DecodeError(f"failed to decompress response body: {e}") from e
        except (httpx.StreamError, httpx.TransportError) as e:
            raise DecodeError(f"failed to read response body: {e}") from e

        logger.debug("read %d body bytes from %s", len(buffer), response.request.url)
        return bytes(buffer)
    finally:
        response.close()
