import json
import pytest
from fractions import Fraction

from progtree.progtree_serialize import (
    serialize, deserialize, detect_format, format_for_path, node_to_builtin, node_from_builtin,
)
from progtree.progtree_datatypes import (
    Node, Construct as C, DeserializationError,
    construct, block, symbol, number, list_of, to_python,
    EMIT, ADDITION, LESS, NUMBER, STRING, NULL,
)


def sample_tree():
    return construct(
        C.FOR_FROM_TO,
        block(construct(EMIT, "i is", symbol("i")), symbol("i"), description="Loop body"),
        symbol("i"),
        1,
        construct(ADDITION, 2, number(Fraction(1, 2))),
        0.5,
    )


@pytest.mark.parametrize("fmt", ["json", "yaml", "xml"])
def test_roundtrip_with_fmt(fmt):
    tree = sample_tree()
    out = deserialize(serialize(tree, fmt=fmt), fmt=fmt)
    assert out.structurally_equals(tree)


def test_json_roundtrip_sniffed():
    tree = construct(C.IF, construct(LESS, 1, 2), list_of("a", None, True))
    out = deserialize(serialize(tree, fmt="json", pretty=False))
    assert out.structurally_equals(tree)


def test_xml_roundtrip_sniffed():
    tree = block(construct(C.WHILE, False, "x"), expanded=False)
    text = serialize(tree, fmt="xml")
    assert '<expression tag="Programming.Block"' in text
    out = deserialize(text)
    assert out.get("Expanded") is False
    assert out.structurally_equals(tree)


def test_builtin_form():
    data = node_to_builtin(construct(ADDITION, 1, number(Fraction(2, 3))))
    assert data == {
        "tag": "Math.Arithmetic.Addition",
        "children": [
            {"tag": "Math.Number", "attributes": {"Value": 1}},
            {"tag": "Math.Number", "attributes": {"Value": "2/3"}},
        ],
    }
    assert to_python(node_from_builtin(data).children[1]) == Fraction(2, 3)


def test_scalar_shorthand_in_children():
    tree = deserialize('{"tag": "Host.Emit", "children": [1, 2.5, "s", true, null, [1, 2]]}')
    assert [to_python(c) for c in tree.children] == [1, 2.5, "s", True, None, [1, 2]]


def test_scalar_document():
    assert to_python(deserialize("42", fmt="yaml")) == 42
    assert deserialize("null", fmt="json").tag == NULL


def test_yaml_with_json_content_type_fallback():
    # YAML payload mislabeled as JSON should still load via fallback to YAML
    out = deserialize("tag: Programming.If\nchildren: [true, 1]\n", content_type="application/json")
    assert out.tag == C.IF
    assert to_python(out.children[1]) == 1


def test_yaml_document():
    text = """
tag: Programming.ForIn
children:
  - tag: Symbolic.Symbol
    attributes: {Name: x}
  - tag: Symbolic.Symbol
    attributes: {Name: x}
  - [1, 2]
"""
    out = deserialize(text)
    assert out.tag == C.FOR_IN
    assert out.children[0].get("Name") == "x"
    assert to_python(out.children[2]) == [1, 2]


@pytest.mark.parametrize("raw, expected", [("3", 3), ("-0.25", -0.25), ("1/3", Fraction(1, 3)), ("4/2", 2)])
def test_xml_number_values_are_decoded(raw, expected):
    out = deserialize(f'<expression tag="Math.Number" Value="{raw}"/>', fmt="xml")
    assert out.tag == NUMBER
    assert out.get("Value") == expected


def test_xml_string_values_stay_strings():
    out = deserialize('<expression tag="String.String" Value="42"/>')
    assert out.tag == STRING
    assert out.get("Value") == "42"


def test_block_defaults_are_filled():
    out = node_from_builtin({"tag": "Programming.Block", "children": [1]})
    assert out.get("Description") == "Block"
    assert out.get("Expanded") is True


@pytest.mark.parametrize("attributes, message", [
    ({"Description": ""}, "Empty description"),
    ({"Description": 5}, "Empty description"),
    ({"Expanded": "maybe"}, "Invalid expansion state"),
])
def test_block_attribute_validation(attributes, message):
    with pytest.raises(DeserializationError, match=message):
        node_from_builtin({"tag": "Programming.Block", "attributes": attributes, "children": [1]})


def test_xml_block_expansion_state():
    with pytest.raises(DeserializationError, match="Invalid expansion state"):
        deserialize('<expression tag="Programming.Block" Description="B" Expanded="yes">'
                    '<expression tag="Null"/></expression>')


@pytest.mark.parametrize("data", [
    {"children": [1]},
    {"tag": ""},
    {"tag": "Test.X", "children": "abc"},
    {"tag": "Test.X", "attributes": [1]},
    {"tag": "Math.Number"},
    {"tag": "Math.Number", "attributes": {"Value": "abc"}},
])
def test_malformed_builtin_documents(data):
    with pytest.raises(DeserializationError):
        node_from_builtin(data)


@pytest.mark.parametrize("text, fmt", [
    ("{tag: [", "json"),
    ("tag: [unclosed", "yaml"),
    ("<expression tag='Null'>", "xml"),
    ("<a/>", "xml"),
    ("<expression/>", "xml"),
    ("", None),
])
def test_bad_documents(text, fmt):
    with pytest.raises(DeserializationError):
        deserialize(text, fmt=fmt)


def test_deserialization_error_is_value_error():
    with pytest.raises(ValueError):
        deserialize("")


def test_unknown_serialization_format():
    with pytest.raises(ValueError):
        serialize(number(1), fmt="toml")


def test_deserialize_bytes_with_charset():
    data = json.dumps({"tag": "String.String", "attributes": {"Value": "café"}}).encode("latin-1")
    out = deserialize(data, content_type="application/json; charset=latin-1")
    assert out.get("Value") == "café"


@pytest.mark.parametrize(
    "ct,expected",
    [
        ("application/json", "json"),
        ("application/json; charset=utf-8", "json"),
        ("application/x-yaml", "yaml"),
        ("application/yaml", "yaml"),
        ("application/xml", "xml"),
        ("text/xml", "xml"),
    ],
)
def test_detect_format_from_content_type(ct, expected):
    assert detect_format(ct) == expected


@pytest.mark.parametrize("hint, expected", [
    ('{"tag": "Null"}', "json"),
    ("  [1, 2]", "json"),
    ("<expression/>", "xml"),
    ("tag: Null", "yaml"),
    ("", None),
    (None, None),
])
def test_detect_format_from_data(hint, expected):
    assert detect_format(None, hint) == expected


@pytest.mark.parametrize("path, expected", [
    ("tree.json", "json"),
    ("tree.YAML", "yaml"),
    ("dir/tree.yml", "yaml"),
    ("tree.xml", "xml"),
    ("tree.txt", None),
])
def test_format_for_path(path, expected):
    assert format_for_path(path) == expected


def test_emitted_node_type():
    assert isinstance(deserialize('{"tag": "Null"}'), Node)


def test_yaml_bare_null_tag():
    out = deserialize("tag: Null\n", fmt="yaml")
    assert out.tag == NULL

    text = """
tag: Programming.IfElse
children:
  - true
  - tag: Null
  - tag: ~
"""
    out = deserialize(text)
    assert [c.tag for c in out.children[1:]] == [NULL, NULL]


def test_missing_tag_is_still_rejected():
    with pytest.raises(DeserializationError, match="without a tag"):
        node_from_builtin({"attributes": {"Value": 1}})
