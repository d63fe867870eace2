"""Multipart/form-data payload builder.

Parts are written to an in-memory buffer as they are added. Errors are
collected instead of raised so a payload can be assembled fluently;
serialize() reports all of them at once.
"""

from __future__ import annotations

import io
import mimetypes
import os
import uuid
from pathlib import Path
from typing import BinaryIO

from courier.errors import MultipartError


class MultipartPayload:
    """A multipart/form-data body built part by part.

    Usage:
        payload = MultipartPayload()
        payload.add_field("title", "report")
        payload.add_file_from_path("file", "report.pdf")
        data, content_type = payload.serialize()
    """

    def __init__(self, boundary: str | None = None) -> None:
        self._boundary = boundary or uuid.uuid4().hex
        self._buffer = io.BytesIO()
        self._errors: list[str] = []

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self._boundary}"

    def add_field(self, name: str, value: str) -> "MultipartPayload":
        self._write_part(f'form-data; name="{_quote(name)}"', None, value.encode("utf-8"))
        return self

    def add_fields(self, fields: dict[str, str]) -> "MultipartPayload":
        for name, value in fields.items():
            self.add_field(name, value)
        return self

    def add_file(self, name: str, filename: str, data: bytes) -> "MultipartPayload":
        self._write_part(
            f'form-data; name="{_quote(name)}"; filename="{_quote(filename)}"',
            _guess_type(filename),
            data,
        )
        return self

    def add_file_reader(
        self, name: str, filename: str, reader: BinaryIO | None
    ) -> "MultipartPayload":
        if reader is None:
            self._errors.append(f"multipart field:{name} filename:{filename} reader is None")
            return self
        try:
            data = reader.read()
        except OSError as e:
            self._errors.append(f"multipart field:{name} filename:{filename} read failed: {e}")
            return self
        return self.add_file(name, filename, data)

    def add_file_from_path(self, name: str, path: str | os.PathLike[str]) -> "MultipartPayload":
        file_path = Path(path)
        try:
            with open(file_path, "rb") as f:
                return self.add_file_reader(name, file_path.name, f)
        except OSError as e:
            self._errors.append(str(e))
            return self

    def serialize(self) -> tuple[bytes, str]:
        """Return the encoded body and its content type.

        Raises:
            MultipartError: If any part failed to be added.
        """
        if self._errors:
            raise MultipartError("; ".join(self._errors))
        return self._buffer.getvalue() + f"--{self._boundary}--\r\n".encode("ascii"), self.content_type

    def reset(self) -> None:
        """Drop all parts and collected errors, keeping the boundary."""
        self._buffer = io.BytesIO()
        self._errors = []

    def _write_part(self, disposition: str, content_type: str | None, data: bytes) -> None:
        head = f"--{self._boundary}\r\nContent-Disposition: {disposition}\r\n"
        if content_type:
            head += f"Content-Type: {content_type}\r\n"
        self._buffer.write(head.encode("utf-8") + b"\r\n" + data + b"\r\n")


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _guess_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"
