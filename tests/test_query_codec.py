"""Tests for query string encoding and decoding."""

import pytest
from pydantic import ValidationError

from courier.query_codec import QueryCodec, decode_query, encode_query


class TestEncodeQuery:
    def test_sorted_by_key(self) -> None:
        assert encode_query({"z": ["1"], "a": ["2"], "m": ["3"]}) == "a=2&m=3&z=1"

    def test_empty(self) -> None:
        assert encode_query({}) == ""

    def test_reserved_characters_escaped(self) -> None:
        assert encode_query({"q": ["a&b=c"]}) == "q=a%26b%3Dc"

    def test_empty_value_list_omits_key(self) -> None:
        assert encode_query({"a": [], "b": ["1"]}) == "b=1"


class TestDecodeQuery:
    def test_leading_question_mark_ignored(self) -> None:
        assert decode_query("?a=1&a=2&b=x") == {"a": ["1", "2"], "b": ["x"]}

    def test_blank_values_kept(self) -> None:
        assert decode_query("flag=&x=1") == {"flag": [""], "x": ["1"]}

    def test_plus_decoded_as_space(self) -> None:
        assert decode_query("q=hello+world") == {"q": ["hello world"]}


class TestQueryCodec:
    def test_defaults_when_unset(self) -> None:
        codec = QueryCodec()
        assert codec.encode_values({"b": ["1"], "a": ["2"]}) == "a=2&b=1"
        assert codec.decode_values("a=1") == {"a": ["1"]}

    def test_custom_directions(self) -> None:
        codec = QueryCodec(
            encode=lambda values: ",".join(values),
            decode=lambda query: {"raw": [query]},
        )
        assert codec.encode_values({"a": ["1"], "b": ["2"]}) == "a,b"
        assert codec.decode_values("x") == {"raw": ["x"]}

    def test_frozen(self) -> None:
        codec = QueryCodec()
        with pytest.raises(ValidationError):
            codec.encode = None  # type: ignore[misc]

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QueryCodec(separator="&")  # type: ignore[call-arg]
