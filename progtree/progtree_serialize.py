from __future__ import annotations

import json
import os
import re
from fractions import Fraction
from typing import Any, Optional

import yaml
import xmltodict

from progtree.progtree_datatypes import (
    Node, Construct, DeserializationError, to_node,
    NULL, NUMBER, LIST, DEFAULT_BLOCK_DESCRIPTION,
)


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        enc = encoding or 'utf-8'
        try:
            return data.decode(enc, errors='replace')
        except LookupError:
            return data.decode('utf-8', errors='replace')
    return str(data)


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def _decode_number(value: Any):
    if isinstance(value, (int, float, Fraction)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if '/' in text:
                return Fraction(text)
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                pass
    raise DeserializationError(f"Invalid number value: {value!r}")


def _encode_number(value: Any):
    if isinstance(value, Fraction):
        return f"{value.numerator}/{value.denominator}"
    return value


def _check_block(node: Node):
    description = node.get("Description", DEFAULT_BLOCK_DESCRIPTION)
    if not isinstance(description, str) or description == "":
        raise DeserializationError("Empty description")
    expanded = node.get("Expanded", True)
    if expanded in ("True", "False"):
        expanded = expanded == "True"
    if not isinstance(expanded, bool):
        raise DeserializationError("Invalid expansion state")
    node.set("Description", description)
    node.set("Expanded", expanded)


def _finish(node: Node) -> Node:
    """Normalizes attributes whose type depends on the tag."""
    if node.tag == NUMBER:
        if "Value" not in node.attributes:
            raise DeserializationError("Number without a value")
        node.set("Value", _decode_number(node.get("Value")))
    elif node.tag == Construct.BLOCK:
        _check_block(node)
    return node


# --------------------------
# Builtin (dict/list) form
# --------------------------

def node_to_builtin(node: Node) -> dict:
    out: dict = {"tag": node.tag}
    if node.attributes:
        out["attributes"] = {
            k: (_encode_number(v) if node.tag == NUMBER and k == "Value" else v)
            for k, v in node.attributes.items()
        }
    if node.children:
        out["children"] = [node_to_builtin(c) for c in node.children]
    return out


def node_from_builtin(data: Any) -> Node:
    """Builds a tree from plain data. Scalars and lists are literal shorthands."""
    if isinstance(data, list):
        return Node(LIST, [node_from_builtin(item) for item in data])
    if not isinstance(data, dict):
        try:
            return to_node(data)
        except TypeError as e:
            raise DeserializationError(str(e)) from e
    tag = data.get("tag")
    if tag is None and "tag" in data:
        # YAML reads a bare `tag: Null` as None
        tag = NULL
    if not isinstance(tag, str) or not tag:
        raise DeserializationError(f"Expression without a tag: {data!r}")
    attributes = data.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise DeserializationError(f"Attributes of {tag} must be a mapping")
    children = data.get("children") or []
    if not isinstance(children, list):
        raise DeserializationError(f"Children of {tag} must be a list")
    node = Node(tag, [node_from_builtin(c) for c in children], attributes)
    return _finish(node)


# --------------------------
# XML form
# --------------------------

def _encode_xml_attribute(value: Any) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, Fraction):
        return f"{value.numerator}/{value.denominator}"
    return str(value)


def _node_to_xml(node: Node) -> dict:
    element: dict = {"@tag": node.tag}
    for name, value in node.attributes.items():
        element[f"@{name}"] = _encode_xml_attribute(value)
    if node.children:
        element["expression"] = [_node_to_xml(c) for c in node.children]
    return element


def _node_from_xml(element: Any) -> Node:
    if not isinstance(element, dict) or "@tag" not in element:
        raise DeserializationError("XML expression element without a tag attribute")
    attributes = {k[1:]: v for k, v in element.items() if k.startswith("@") and k != "@tag"}
    children = [_node_from_xml(c) for c in element.get("expression") or []]
    return _finish(Node(element["@tag"], children, attributes))


# --------------------------
# Public API
# --------------------------

def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml', 'xml'.
    Uses Content-Type first; falls back to simple data sniffing if provided.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct:
        return 'yaml'
    if 'xml' in ct:
        return 'xml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        if s.startswith('<'):
            return 'xml'
        if s:
            return 'yaml'
    return None


def format_for_path(path: str) -> Optional[str]:
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        return "json"
    if ext in (".yaml", ".yml"):
        return "yaml"
    if ext == ".xml":
        return "xml"
    return None


def serialize(node: Node, *, fmt: str, pretty: bool = True) -> str:
    """
    Convert a tree into a textual document.
    - fmt: 'json' | 'yaml' | 'xml'
    """
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(node_to_builtin(node), ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(node_to_builtin(node), sort_keys=False, allow_unicode=True)
    if f == 'xml':
        return xmltodict.unparse({"expression": _node_to_xml(node)}, pretty=pretty)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(data: bytes | bytearray | str,
                *,
                fmt: Optional[str] = None,
                content_type: Optional[str] = None) -> Node:
    """
    Convert a textual document into a tree.
    If fmt is None, uses content_type, then sniffing.
    """
    enc = _encoding_from_content_type(content_type)
    text = _norm_text(data, encoding=enc)
    f = (fmt or detect_format(content_type, text))
    if f == 'json':
        try:
            built = json.loads(text)
        except json.JSONDecodeError:
            # YAML is a superset of JSON
            try:
                built = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise DeserializationError(f"Invalid JSON document: {e}") from e
        return node_from_builtin(built)
    if f == 'yaml':
        try:
            built = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DeserializationError(f"Invalid YAML document: {e}") from e
        return node_from_builtin(built)
    if f == 'xml':
        try:
            parsed = xmltodict.parse(text, force_list=("expression",))
        except Exception as e:
            raise DeserializationError(f"Invalid XML document: {e}") from e
        roots = parsed.get("expression") if isinstance(parsed, dict) else None
        if not roots or len(roots) != 1:
            raise DeserializationError("XML document must have one root expression element")
        return _node_from_xml(roots[0])
    raise DeserializationError(f"Cannot determine document format (fmt={fmt!r})")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "format_for_path",
    "node_to_builtin",
    "node_from_builtin",
]
