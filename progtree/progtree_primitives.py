"""
Primitive reducers and helpers: symbols, assignment, arithmetic,
relations, membership, logic and the host `Emit` form.

Only the operations the programming constructs rely on are
provided. A primitive whose operands are not (yet) values leaves the
node untouched, so symbolic expressions stay in the tree unreduced.
"""
import numbers
from fractions import Fraction
from typing import Optional

from progtree.progtree_datatypes import (
    Node, ScopeEntry, number, boolean, null,
    NULL, TRUE, FALSE, NUMBER, STRING, LIST, SYMBOL, ASSIGNMENT,
    ADDITION, MULTIPLICATION, NEGATIVE,
    EQUALS, NOT_EQUALS, LESS, LESS_OR_EQUALS, GREATER, GREATER_OR_EQUALS,
    COMPARE, IN, NEGATION, EMIT,
    COMPARISON_LESS, COMPARISON_EQUALS, COMPARISON_GREATER, COMPARISON_DIFFERENT,
)
from progtree.progtree_registry import exactly, at_least

INTEGER_ONE = 1

_SCALAR_TAGS = (NULL, TRUE, FALSE, NUMBER, STRING)


# =================================================================
# Numeric and collection helpers
# =================================================================

def is_internal_number(node: Node) -> bool:
    return node.tag == NUMBER and isinstance(node.get("Value"), numbers.Number) \
        and not isinstance(node.get("Value"), bool)


def get_native_integer(node: Node) -> Optional[int]:
    """The node's value as a Python int, or None when it is not an integer number."""
    if not is_internal_number(node):
        return None
    value = node.get("Value")
    if isinstance(value, int):
        return value
    if isinstance(value, Fraction) and value.denominator == 1:
        return int(value)
    return None


def create_internal_number(value) -> Node:
    return number(value)


def comparison(a, b) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def addition(a, b):
    return a + b


def is_negative(value) -> bool:
    return value < 0


def is_list(node: Node) -> bool:
    return node.tag == LIST


def is_value(node: Node) -> bool:
    """True for literals and lists of literals."""
    if node.tag in _SCALAR_TAGS:
        return True
    if node.tag == LIST:
        return all(is_value(child) for child in node.children)
    return False


def values_equal(a: Node, b: Node) -> bool:
    if is_internal_number(a) and is_internal_number(b):
        return a.get("Value") == b.get("Value")
    if a.tag != b.tag:
        return False
    if a.tag == LIST:
        return len(a.children) == len(b.children) and \
            all(values_equal(x, y) for x, y in zip(a.children, b.children))
    return a.attributes == b.attributes


def _orderable(a: Node, b: Node) -> bool:
    return (is_internal_number(a) and is_internal_number(b)) or (a.tag == STRING and b.tag == STRING)


# =================================================================
# Symbols
# =================================================================

async def symbol_reducer(node: Node, session) -> bool:
    entry = session.lookup(node, node.get("Name"))
    if entry is None or entry.get_value() is None:
        return False
    node.replace_by(entry.get_value().clone())
    return True


async def assignment_reducer(node: Node, session) -> bool:
    target = node.children[0]
    if target.tag != SYMBOL:
        raise session.fail(target, "Expression must be a symbol")

    value = await session.reduce_and_get(node.children[1], 1)

    name = target.get("Name")
    entry = session.lookup(node, name)
    if entry is None:
        entry = ScopeEntry()
        session.root_scope.put(name, entry)
    entry.set_value(value.clone())

    node.replace_by(value)
    return True


# =================================================================
# Arithmetic
# =================================================================

async def addition_reducer(node: Node, session) -> bool:
    if not all(is_internal_number(c) for c in node.children):
        return False
    total = node.children[0].get("Value")
    for child in node.children[1:]:
        total = addition(total, child.get("Value"))
    node.replace_by(number(total))
    return True


async def multiplication_reducer(node: Node, session) -> bool:
    if not all(is_internal_number(c) for c in node.children):
        return False
    product = node.children[0].get("Value")
    for child in node.children[1:]:
        product = product * child.get("Value")
    node.replace_by(number(product))
    return True


async def negative_reducer(node: Node, session) -> bool:
    operand = node.children[0]
    if not is_internal_number(operand):
        return False
    node.replace_by(number(-operand.get("Value")))
    return True


# =================================================================
# Relations
# =================================================================

def _relation(test, ordering: bool):
    async def reducer(node: Node, session) -> bool:
        left, right = node.children
        if ordering:
            if not _orderable(left, right):
                return False
            result = test(comparison(left.get("Value"), right.get("Value")))
        else:
            if not (is_value(left) and is_value(right)):
                return False
            result = test(values_equal(left, right))
        node.replace_by(boolean(result))
        return True
    return reducer


equals_reducer = _relation(lambda eq: eq, ordering=False)
not_equals_reducer = _relation(lambda eq: not eq, ordering=False)
less_reducer = _relation(lambda c: c < 0, ordering=True)
less_or_equals_reducer = _relation(lambda c: c <= 0, ordering=True)
greater_reducer = _relation(lambda c: c > 0, ordering=True)
greater_or_equals_reducer = _relation(lambda c: c >= 0, ordering=True)


async def compare_reducer(node: Node, session) -> bool:
    """Three-way comparison; unordered values compare as Equals or Different."""
    left, right = node.children
    if _orderable(left, right):
        c = comparison(left.get("Value"), right.get("Value"))
        tag = COMPARISON_LESS if c < 0 else (COMPARISON_GREATER if c > 0 else COMPARISON_EQUALS)
    elif is_value(left) and is_value(right):
        tag = COMPARISON_EQUALS if values_equal(left, right) else COMPARISON_DIFFERENT
    else:
        return False
    node.replace_by(Node(tag))
    return True


async def in_reducer(node: Node, session) -> bool:
    element, container = node.children
    if not is_list(container) or not is_value(element) or not is_value(container):
        return False
    found = any(values_equal(element, item) for item in container.children)
    node.replace_by(boolean(found))
    return True


async def negation_reducer(node: Node, session) -> bool:
    operand = node.children[0]
    if operand.tag not in (TRUE, FALSE):
        return False
    node.replace_by(boolean(operand.tag == FALSE))
    return True


# =================================================================
# Host
# =================================================================

async def emit_reducer(node: Node, session) -> bool:
    """Appends a stdout side effect for the host, then reduces to Null."""
    from progtree.progtree_printer import Printer
    printer = Printer()
    parts = [c.get("Value") if c.tag == STRING else printer.pformat(c) for c in node.children]
    session.side_effects.append({"topics": ["stdout"], "message": " ".join(parts)})
    node.replace_by(null())
    return True


def set_reducers(registry):
    registry.add_reducer(SYMBOL, symbol_reducer, "Primitives.symbolReducer")
    registry.add_reducer(ASSIGNMENT, assignment_reducer, "Primitives.assignmentReducer",
                         pre_reduces_children=False, arity=exactly(2))

    registry.add_reducer(ADDITION, addition_reducer, "Primitives.additionReducer", arity=at_least(2))
    registry.add_reducer(MULTIPLICATION, multiplication_reducer, "Primitives.multiplicationReducer", arity=at_least(2))
    registry.add_reducer(NEGATIVE, negative_reducer, "Primitives.negativeReducer", arity=exactly(1))

    registry.add_reducer(EQUALS, equals_reducer, "Primitives.equalsReducer", arity=exactly(2))
    registry.add_reducer(NOT_EQUALS, not_equals_reducer, "Primitives.notEqualsReducer", arity=exactly(2))
    registry.add_reducer(LESS, less_reducer, "Primitives.lessReducer", arity=exactly(2))
    registry.add_reducer(LESS_OR_EQUALS, less_or_equals_reducer, "Primitives.lessOrEqualsReducer", arity=exactly(2))
    registry.add_reducer(GREATER, greater_reducer, "Primitives.greaterReducer", arity=exactly(2))
    registry.add_reducer(GREATER_OR_EQUALS, greater_or_equals_reducer, "Primitives.greaterOrEqualsReducer", arity=exactly(2))
    registry.add_reducer(COMPARE, compare_reducer, "Primitives.compareReducer", arity=exactly(2))
    registry.add_reducer(IN, in_reducer, "Primitives.inReducer", arity=exactly(2))

    registry.add_reducer(NEGATION, negation_reducer, "Primitives.negationReducer", arity=exactly(1))
    registry.add_reducer(EMIT, emit_reducer, "Primitives.emitReducer")
