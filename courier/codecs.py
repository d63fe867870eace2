"""Built-in marshallers for structured request and response bodies.

JSON uses the standard library encoder with pydantic's jsonable conversion as
the fallback, so models, dataclasses, datetimes and UUIDs marshal without
caller help.

XML converts between dicts and element trees. A dict must have exactly one
top-level key, which names the root element. Nested dicts become child
elements, lists become repeated siblings, ``None`` becomes an empty element.
Parsing is the inverse: namespaces are stripped from tag names, attributes
become ``@name`` keys, and an element with both children and text keeps the
text under ``#text``.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from collections import defaultdict
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from courier.errors import MarshalError


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def json_marshal(value: Any) -> bytes:
    """Serialize *value* to UTF-8 JSON bytes.

    Raises:
        MarshalError: If the value has no JSON representation.
    """
    try:
        return json.dumps(value, default=to_jsonable_python, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MarshalError(f"cannot marshal {type(value).__name__} as JSON: {e}") from e


def json_unmarshal(data: bytes) -> Any:
    """Parse JSON bytes. Raises json.JSONDecodeError on malformed input."""
    return json.loads(data)


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def xml_marshal(value: Any) -> bytes:
    """Serialize *value* to XML bytes.

    Pydantic models are dumped first and wrapped under their class name.

    Raises:
        MarshalError: If the value cannot be shaped into a single-root document.
    """
    if isinstance(value, BaseModel):
        value = {type(value).__name__: value.model_dump(mode="json")}
    try:
        return dict_to_xml(value)
    except ValueError as e:
        raise MarshalError(str(e)) from e


def xml_unmarshal(data: bytes) -> Any:
    """Parse XML bytes into a dict. Raises ET.ParseError on malformed input."""
    return xml_to_dict(data)


def xml_to_dict(
    xml_bytes: bytes,
    force_list: set[str] | None = None,
) -> dict[str, Any]:
    """Parse an XML document into a dict keyed by the root tag.

    Text split around child elements (mixed content) is joined before it is
    stored under ``#text``.

    Args:
        xml_bytes: Raw XML body.
        force_list: Tags that always map to a list, even for a single child.

    Raises:
        ET.ParseError: If *xml_bytes* is not well-formed XML.
    """
    root = ET.fromstring(xml_bytes)
    always_list = frozenset(force_list or ())
    return {_local_name(root.tag): _convert(root, always_list)}


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def _convert(element: ET.Element, always_list: frozenset[str]) -> dict[str, Any] | str | None:
    attributes = {
        f"@{name}": attr
        for name, attr in element.attrib.items()
        # xmlns declarations and namespaced attributes are not data
        if not name.startswith(("xmlns", "{"))
    }
    children: defaultdict[str, list[Any]] = defaultdict(list)
    for child in element:
        children[_local_name(child.tag)].append(_convert(child, always_list))
    text = "".join([element.text or "", *(child.tail or "" for child in element)]).strip()

    if not attributes and not children:
        return text or None

    value: dict[str, Any] = attributes
    for tag, items in children.items():
        value[tag] = items if len(items) > 1 or tag in always_list else items[0]
    if text:
        value["#text"] = text
    return value


def dict_to_xml(data: dict[str, Any]) -> bytes:
    """Render a single-root dict as UTF-8 XML bytes with a declaration.

    ``@attr`` keys are emitted as attributes and ``#text`` as element text.

    Raises:
        ValueError: If *data* is not a dict with exactly one key.
    """
    if not isinstance(data, dict) or len(data) != 1:
        size = len(data) if isinstance(data, dict) else "N/A"
        raise ValueError(
            f"XML body must be a dict with exactly one root key, "
            f"got {type(data).__name__} with {size} keys"
        )

    root_tag, root_value = next(iter(data.items()))
    root = _build_element(str(root_tag), root_value)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _build_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)

    if value is None:
        return element

    if isinstance(value, dict):
        for key, child in value.items():
            key = str(key)
            if key == "#text":
                element.text = _text(child)
            elif key.startswith("@"):
                element.set(key[1:], _text(child))
            elif isinstance(child, list):
                for item in child:
                    element.append(_build_element(key, item))
            else:
                element.append(_build_element(key, child))
    elif isinstance(value, list):
        for item in value:
            element.append(_build_element("item", item))
    else:
        element.text = _text(value)

    return element


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
