"""Query string encoding.

Queries are multimaps: ``dict[str, list[str]]``. The default encoding sorts
keys alphabetically and percent-encodes keys and values the way HTML forms do
(space becomes ``+``). A QueryCodec overrides either direction.
"""

from __future__ import annotations

from typing import Callable
from urllib.parse import parse_qs, urlencode

from pydantic import BaseModel, ConfigDict


def encode_query(values: dict[str, list[str]]) -> str:
    """Encode a query multimap with keys in alphabetical order.

    Values keep their insertion order within a key.
    """
    pairs: list[tuple[str, str]] = []
    for key in sorted(values):
        for value in values[key]:
            pairs.append((key, value))
    return urlencode(pairs)


def decode_query(query: str) -> dict[str, list[str]]:
    """Decode a query string into a multimap. Blank values are kept."""
    return parse_qs(query.lstrip("?"), keep_blank_values=True)


class QueryCodec(BaseModel):
    """Pluggable query encoder/decoder.

    Either callable may be left unset; the default encoding is used for the
    missing direction.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    encode: Callable[[dict[str, list[str]]], str] | None = None
    decode: Callable[[str], dict[str, list[str]]] | None = None

    def encode_values(self, values: dict[str, list[str]]) -> str:
        if self.encode is not None:
            return self.encode(values)
        return encode_query(values)

    def decode_values(self, query: str) -> dict[str, list[str]]:
        if self.decode is not None:
            return self.decode(query)
        return decode_query(query)
