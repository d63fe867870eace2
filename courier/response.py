"""The materialized result of one logical request."""

from __future__ import annotations

import io
import os
import re
from http import HTTPStatus
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from courier import codecs
from courier.models import RequestDescriptor
from courier.performance import PerformanceRecorder

_CHARSET = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)


class Response(BaseModel):
    """A fully read, decoded HTTP response.

    Fields are fixed once built. ``annotations`` is the one mutable part:
    response interceptors may record their findings there.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status_code: int = Field(description="HTTP status code")
    reason_phrase: str = Field(default="", description="Reason phrase sent by the server")
    http_version: str = Field(default="HTTP/1.1", description="Protocol version")
    url: str = Field(description="URL of the final (non-redirect) exchange")
    headers: httpx.Headers = Field(description="Response headers (multi-valued)")
    cookies: httpx.Cookies = Field(description="Cookies set by the response")
    body: bytes = Field(description="Decoded body bytes")
    request: RequestDescriptor = Field(description="Descriptor that produced this response")
    performance: PerformanceRecorder = Field(description="Metrics of the final attempt")
    annotations: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_httpx(
        cls,
        raw: httpx.Response,
        body: bytes,
        request: RequestDescriptor,
        performance: PerformanceRecorder,
    ) -> "Response":
        return cls(
            status_code=raw.status_code,
            reason_phrase=raw.reason_phrase,
            http_version=raw.http_version,
            url=str(raw.request.url),
            headers=raw.headers,
            cookies=raw.cookies,
            body=body,
            request=request,
            performance=performance,
        )

    @property
    def ok(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status_code < 300

    @property
    def status_text(self) -> str:
        if self.reason_phrase:
            return self.reason_phrase
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return ""

    @property
    def content_encoding(self) -> str:
        return self.headers.get("content-encoding", "")

    @property
    def text(self) -> str:
        """Body decoded with the declared charset (UTF-8 when none)."""
        match = _CHARSET.search(self.headers.get("content-type", ""))
        encoding = match.group(1) if match else "utf-8"
        try:
            return self.body.decode(encoding, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")

    def body_reader(self) -> io.BytesIO:
        return io.BytesIO(self.body)

    def json(self, into: Any = None) -> Any:
        """Parse the body as JSON, optionally validating it into *into*.

        *into* is any type pydantic can validate: a model, a dataclass,
        ``list[int]``, and so on.
        """
        unmarshal = self.request.json_unmarshal or codecs.json_unmarshal
        return _coerce(unmarshal(self.body), into)

    def xml(self, into: Any = None) -> Any:
        """Parse the body as XML into a dict, optionally validating it into *into*."""
        unmarshal = self.request.xml_unmarshal or codecs.xml_unmarshal
        return _coerce(unmarshal(self.body), into)

    def save_to_file(self, path: str | os.PathLike[str]) -> Path:
        target = Path(path)
        target.write_bytes(self.body)
        return target

    def __repr__(self) -> str:
        return f"<Response [{self.status_code} {self.status_text}]>"


def _coerce(data: Any, into: Any) -> Any:
    if into is None:
        return data
    return TypeAdapter(into).validate_python(data)
