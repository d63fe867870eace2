"""Tests for request body classification and resolution.

Tests cover:
- to_body: classification of plain values into body variants
- resolve_body: wire content per variant, XML vs JSON selection by
  content type, unsupported values
- Content-Type defaults and the multipart header side effect
"""

import io

import pytest
from pydantic import BaseModel

from courier import codecs
from courier.body import (
    FormBody,
    MultipartBody,
    RawBody,
    StreamBody,
    StructuredBody,
    TextBody,
    default_content_type,
    is_xml_content_type,
    resolve_body,
    to_body,
)
from courier.errors import MarshalError, MultipartError, UnsupportedBodyError
from courier.models import RequestDescriptor
from courier.multipart import MultipartPayload


class Widget(BaseModel):
    name: str
    count: int


def resolve(body, content_type=None):
    return resolve_body(body, content_type, codecs.json_marshal, codecs.xml_marshal)


class TestToBody:
    def test_none_is_no_body(self) -> None:
        assert to_body(None) is None

    def test_bytes_is_raw(self) -> None:
        assert to_body(b"\x00\x01") == RawBody(b"\x00\x01")

    def test_bytearray_is_raw(self) -> None:
        assert to_body(bytearray(b"ab")) == RawBody(b"ab")

    def test_str_is_text(self) -> None:
        assert to_body("hi") == TextBody("hi")

    def test_file_object_is_stream(self) -> None:
        f = io.BytesIO(b"data")
        assert to_body(f) == StreamBody(f)

    def test_generator_is_stream(self) -> None:
        gen = (chunk for chunk in [b"a"])
        assert isinstance(to_body(gen), StreamBody)

    def test_multipart_payload(self) -> None:
        payload = MultipartPayload()
        assert to_body(payload) == MultipartBody(payload)

    def test_dict_is_structured(self) -> None:
        assert to_body({"a": 1}) == StructuredBody({"a": 1})

    def test_list_is_structured(self) -> None:
        assert isinstance(to_body([1, 2]), StructuredBody)

    def test_variant_passes_through(self) -> None:
        form = FormBody.from_mapping({"a": "1"})
        assert to_body(form) is form


class TestResolveBody:
    def test_raw_sent_verbatim(self) -> None:
        assert resolve(RawBody(b"\xff")).content == b"\xff"

    def test_text_utf8(self) -> None:
        assert resolve(TextBody("café")).content == "café".encode("utf-8")

    def test_stream_passed_through(self) -> None:
        chunks = iter([b"a", b"b"])
        assert resolve(StreamBody(chunks)).content is chunks

    def test_form_encoded_sorted(self) -> None:
        form = FormBody.from_mapping({"b": "2", "a": ["1", "x y"]})
        assert resolve(form).content == b"a=1&a=x+y&b=2"

    def test_structured_defaults_to_json(self) -> None:
        assert resolve(StructuredBody({"a": 1})).content == b'{"a": 1}'

    def test_model_marshalled_as_json(self) -> None:
        content = resolve(StructuredBody(Widget(name="w", count=2))).content
        assert content == b'{"name": "w", "count": 2}'

    @pytest.mark.parametrize(
        "content_type",
        ["application/xml", "text/xml; charset=utf-8", "application/atom+xml", "APPLICATION/XML"],
    )
    def test_structured_xml_for_xml_types(self, content_type: str) -> None:
        content = resolve(StructuredBody({"Root": {"A": "1"}}), content_type).content
        assert content.startswith(b"<?xml")
        assert b"<A>1</A>" in content

    def test_json_suffix_type_uses_json(self) -> None:
        content = resolve(StructuredBody({"a": 1}), "application/vnd.api+json").content
        assert content == b'{"a": 1}'

    def test_multipart_reports_content_type(self) -> None:
        payload = MultipartPayload(boundary="xyz").add_field("a", "1")
        resolved = resolve(MultipartBody(payload))
        assert resolved.content_type == "multipart/form-data; boundary=xyz"
        assert resolved.content.endswith(b"--xyz--\r\n")

    def test_multipart_errors_propagate(self) -> None:
        payload = MultipartPayload().add_file_reader("f", "a.txt", None)
        with pytest.raises(MultipartError):
            resolve(MultipartBody(payload))

    def test_marshal_error_propagates(self) -> None:
        with pytest.raises(MarshalError):
            resolve(StructuredBody({"a": object()}))

    def test_unsupported_value(self) -> None:
        with pytest.raises(UnsupportedBodyError) as exc_info:
            resolve(42)  # type: ignore[arg-type]
        assert "int" in str(exc_info.value)
        assert exc_info.value.body == 42

    def test_custom_json_marshal(self) -> None:
        resolved = resolve_body(StructuredBody({"a": 1}), None, lambda v: b"custom", codecs.xml_marshal)
        assert resolved.content == b"custom"


class TestContentTypes:
    def test_xml_detection(self) -> None:
        assert is_xml_content_type("application/soap+xml")
        assert not is_xml_content_type("application/json")
        assert not is_xml_content_type(None)

    @pytest.mark.parametrize(
        "body, expected",
        [
            (TextBody("x"), "text/plain; charset=utf-8"),
            (RawBody(b"x"), "application/octet-stream"),
            (FormBody({}), "application/x-www-form-urlencoded"),
            (StructuredBody({}), "application/json"),
            (StreamBody(iter([])), None),
            (MultipartBody(MultipartPayload()), None),
        ],
    )
    def test_defaults(self, body, expected) -> None:
        assert default_content_type(body) == expected


class TestDescriptorBody:
    def test_no_body(self) -> None:
        d = RequestDescriptor()
        assert d.get_request_body() is None
        d.set_content_type_header()
        assert d.get_header("Content-Type") is None

    def test_multipart_sets_header(self) -> None:
        payload = MultipartPayload(boundary="b1")
        d = RequestDescriptor(body=payload, headers={"content-type": "text/plain"})
        d.get_request_body()
        assert d.headers == {"Content-Type": ["multipart/form-data; boundary=b1"]}

    def test_xml_chosen_from_descriptor_header(self) -> None:
        d = RequestDescriptor(body={"Root": "x"}, headers={"Content-Type": "application/xml"})
        assert d.get_request_body().content.startswith(b"<?xml")

    def test_default_content_type_applied(self) -> None:
        d = RequestDescriptor(body={"a": 1})
        d.set_content_type_header()
        assert d.get_header("Content-Type") == "application/json"

    def test_caller_content_type_kept(self) -> None:
        d = RequestDescriptor(body=b"x", headers={"Content-Type": "image/png"})
        d.set_content_type_header()
        assert d.get_header("Content-Type") == "image/png"

    def test_stream_gets_no_content_type(self) -> None:
        d = RequestDescriptor(body=io.BytesIO(b"x"))
        d.set_content_type_header()
        assert d.get_header("Content-Type") is None
