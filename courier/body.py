"""Request body variants and their conversion to wire content.

A request body is one of a closed set of variants. Callers may assign a
variant directly or any plain value, which to_body() classifies:

    bytes / bytearray / memoryview  -> RawBody
    str                             -> TextBody
    file object or byte iterator    -> StreamBody
    MultipartPayload                -> MultipartBody
    anything else                   -> StructuredBody (marshalled)

Forms have no natural Python type of their own, so FormBody is only produced
explicitly (see options.with_form).
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Callable, Union

from courier.errors import UnsupportedBodyError
from courier.multipart import MultipartPayload
from courier.query_codec import encode_query

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
STREAM_CONTENT_TYPE = "application/octet-stream"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

_XML_CONTENT_TYPE = re.compile(r"(?i)^(application|text)/(\S+\+)?xml")

Marshal = Callable[[Any], bytes]


@dataclass(frozen=True)
class RawBody:
    data: bytes


@dataclass(frozen=True)
class TextBody:
    text: str


@dataclass(frozen=True)
class StreamBody:
    """A one-shot byte source, sent as-is with the caller's content type."""

    stream: Iterable[bytes]


@dataclass(frozen=True)
class FormBody:
    values: dict[str, list[str]]

    @classmethod
    def from_mapping(cls, values: dict[str, str | list[str]]) -> "FormBody":
        return cls({k: [v] if isinstance(v, str) else list(v) for k, v in values.items()})


@dataclass(frozen=True)
class MultipartBody:
    payload: MultipartPayload


@dataclass(frozen=True)
class StructuredBody:
    value: Any


Body = Union[RawBody, TextBody, StreamBody, FormBody, MultipartBody, StructuredBody]
_VARIANTS = (RawBody, TextBody, StreamBody, FormBody, MultipartBody, StructuredBody)


@dataclass(frozen=True)
class ResolvedBody:
    """Wire content plus the content type the body itself dictates (multipart only)."""

    content: bytes | Iterable[bytes]
    content_type: str | None = None


def to_body(value: Any) -> Body | None:
    """Classify a caller-supplied value as a body variant. None means no body."""
    if value is None or isinstance(value, _VARIANTS):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return RawBody(bytes(value))
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, MultipartPayload):
        return MultipartBody(value)
    if isinstance(value, (io.IOBase, Iterator)):
        return StreamBody(value)
    return StructuredBody(value)


def is_xml_content_type(content_type: str | None) -> bool:
    return bool(content_type) and _XML_CONTENT_TYPE.match(content_type.strip()) is not None


def resolve_body(
    body: Body,
    content_type: str | None,
    json_marshal: Marshal,
    xml_marshal: Marshal,
) -> ResolvedBody:
    """Turn a body variant into wire content.

    Structured values go through the XML marshaller when *content_type* is
    XML-like and through the JSON marshaller otherwise. Marshal errors
    propagate to the caller.

    Raises:
        UnsupportedBodyError: If *body* is not one of the body variants.
        MultipartError: If a multipart payload collected errors.
        MarshalError: If a structured value cannot be marshalled.
    """
    if isinstance(body, StreamBody):
        return ResolvedBody(body.stream)
    if isinstance(body, RawBody):
        return ResolvedBody(body.data)
    if isinstance(body, MultipartBody):
        data, multipart_type = body.payload.serialize()
        return ResolvedBody(data, multipart_type)
    if isinstance(body, FormBody):
        return ResolvedBody(encode_query(body.values).encode("ascii"))
    if isinstance(body, TextBody):
        return ResolvedBody(body.text.encode("utf-8"))
    if isinstance(body, StructuredBody):
        marshal = xml_marshal if is_xml_content_type(content_type) else json_marshal
        return ResolvedBody(marshal(body.value))
    raise UnsupportedBodyError(body)


def default_content_type(body: Body) -> str | None:
    """Content type to assume when the caller set none.

    Streams and multipart payloads return None: the caller (or the payload
    itself) owns their content type.
    """
    if isinstance(body, TextBody):
        return TEXT_CONTENT_TYPE
    if isinstance(body, RawBody):
        return STREAM_CONTENT_TYPE
    if isinstance(body, (StreamBody, MultipartBody)):
        return None
    if isinstance(body, FormBody):
        return FORM_CONTENT_TYPE
    return JSON_CONTENT_TYPE
