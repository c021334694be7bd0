"""
Defines the core data types for the progtree reduction engine.

This module provides the expression tree (Node), the lexical scope
substrate (Scope, ScopeEntry), the closed enumeration of programming
construct tags, and the error types raised during reduction.
"""

import copy
import numbers
from enum import Enum
from fractions import Fraction
from typing import List, Dict, Any, Optional


class ReductionError(Exception):
    """Raised by a reducer to abort the whole reduction in flight.

    The offending node has already been marked (see Session.set_in_error)
    when this is raised.
    """
    def __init__(self, message: str = "Reduction error", node: Optional['Node'] = None):
        super().__init__(message)
        self.message = message
        self.node = node


class DeserializationError(ValueError):
    """Raised when a tree document cannot be turned into nodes."""
    pass


# =================================================================
# Tags
# =================================================================

class Construct(str, Enum):
    """Tags of the programming constructs handled by progtree_reducers."""
    BLOCK = "Programming.Block"

    IF = "Programming.If"
    INVERTED_IF = "Programming.InvertedIf"
    IF_ELSE = "Programming.IfElse"
    CONDITIONAL = "Programming.Conditional"

    FOR_TIMES = "Programming.ForTimes"
    FOR_FROM_TO = "Programming.ForFromTo"
    FOR_IN = "Programming.ForIn"
    INVERTED_FOR_TIMES = "Programming.InvertedForTimes"
    INVERTED_FOR_FROM_TO = "Programming.InvertedForFromTo"
    INVERTED_FOR_IN = "Programming.InvertedForIn"

    CYCLE = "Programming.Cycle"
    CYCLE_TIMES = "Programming.CycleTimes"
    CYCLE_FROM_TO = "Programming.CycleFromTo"
    CYCLE_IN = "Programming.CycleIn"

    WHILE = "Programming.While"
    UNTIL = "Programming.Until"

    COMPARATIVE_SWITCH = "Programming.ComparativeSwitch"
    CONDITIONAL_SWITCH = "Programming.ConditionalSwitch"

    def __str__(self) -> str:
        return self.value


# Primitive tags
NULL = "Null"
TRUE = "Logic.True"
FALSE = "Logic.False"
NUMBER = "Math.Number"
STRING = "String.String"
LIST = "List.List"
SYMBOL = "Symbolic.Symbol"
ASSIGNMENT = "Symbolic.Assignment"

ADDITION = "Math.Arithmetic.Addition"
MULTIPLICATION = "Math.Arithmetic.Multiplication"
NEGATIVE = "Math.Arithmetic.Negative"

EQUALS = "Relation.Equals"
NOT_EQUALS = "Relation.NotEquals"
LESS = "Relation.Less"
LESS_OR_EQUALS = "Relation.LessOrEquals"
GREATER = "Relation.Greater"
GREATER_OR_EQUALS = "Relation.GreaterOrEquals"
COMPARE = "Relation.Compare"
IN = "Relation.In"

COMPARISON_LESS = "Relation.Comparison.Less"
COMPARISON_EQUALS = "Relation.Comparison.Equals"
COMPARISON_GREATER = "Relation.Comparison.Greater"
COMPARISON_DIFFERENT = "Relation.Comparison.Different"

NEGATION = "Logic.Negation"
EMIT = "Host.Emit"

# Wraps the tree under reduction so that its root has a parent slot.
HOLDER = "Internal.Holder"

DEFAULT_BLOCK_DESCRIPTION = "Block"


# =================================================================
# Scope substrate
# =================================================================

class ScopeEntry:
    """A mutable cell bound to a name inside a Scope."""
    def __init__(self, value: Optional['Node'] = None):
        self.value = value

    def set_value(self, value: Optional['Node']):
        self.value = value

    def get_value(self) -> Optional['Node']:
        return self.value

    def __repr__(self) -> str:
        return f"<ScopeEntry value={self.value!r}>"


class Scope:
    """Maps symbol names to ScopeEntry cells.

    A scope is attached to a node (see Node.create_scope) or owned by a
    session as its root scope. Lookup across nested scopes is lexical
    and is performed by walking node parents, not by chaining scopes.
    """
    def __init__(self):
        self.bindings: Dict[str, ScopeEntry] = {}
        self.exported: set = set()

    def put(self, name: str, entry: ScopeEntry, exported: bool = False):
        if not isinstance(name, str):
            raise TypeError(f"Scope key must be a str, not {type(name)}")
        self.bindings[name] = entry
        if exported:
            self.exported.add(name)
        else:
            self.exported.discard(name)

    def get(self, name: str, default: Any = None) -> Any:
        return self.bindings.get(name, default)

    def __getitem__(self, name: str) -> ScopeEntry:
        return self.bindings[name]

    def __contains__(self, name: Any) -> bool:
        return name in self.bindings

    def keys(self):
        return self.bindings.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        return f"<Scope bindings=[{keys}]>"


# =================================================================
# Tree substrate
# =================================================================

class Node:
    """A tagged tree element with ordered children, the unit of reduction.

    Children are owned exclusively by their node; every child keeps a
    back reference to its parent so that a node can be replaced in its
    parent's slot (replace_by). Construct specific data such as a
    number's `Value` or a symbol's `Name` live in `attributes`.
    """
    def __init__(self, tag: str, children: Optional[List['Node']] = None, attributes: Optional[Dict[str, Any]] = None):
        self.tag = str(tag)
        self.children: List['Node'] = []
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.parent: Optional['Node'] = None
        self.scope: Optional[Scope] = None
        self.error: Optional[str] = None
        for child in children or []:
            self.add_child(child)

    # --- attributes ---

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set(self, name: str, value: Any):
        self.attributes[name] = value

    # --- structure ---

    def add_child(self, child: 'Node'):
        child.parent = self
        self.children.append(child)

    def set_child(self, index: int, child: 'Node'):
        """Installs child at index; the previous occupant is left detached."""
        child.parent = self
        self.children[index] = child

    def index_in_parent(self) -> int:
        if self.parent is None:
            raise ValueError("Node has no parent")
        for i, sibling in enumerate(self.parent.children):
            if sibling is self:
                return i
        raise ValueError("Node is not a child of its parent")

    def replace_by(self, other: 'Node'):
        """Installs other in this node's former slot. This node becomes detached."""
        parent = self.parent
        if parent is None:
            raise ValueError(f"Cannot replace a root node ({self.tag})")
        parent.set_child(self.index_in_parent(), other)
        self.parent = None

    def clone(self) -> 'Node':
        """Deep structural copy with independent identities.

        Scopes and error marks are reduction state and are not copied.
        """
        dup = Node(self.tag, attributes=copy.deepcopy(self.attributes))
        for child in self.children:
            dup.add_child(child.clone())
        return dup

    # --- scope ---

    def create_scope(self) -> Scope:
        self.scope = Scope()
        return self.scope

    def put_into_scope(self, name: str, entry: ScopeEntry, exported: bool = False):
        if self.scope is None:
            self.create_scope()
        self.scope.put(name, entry, exported)

    def find_scope_entry(self, name: str) -> Optional[ScopeEntry]:
        """Looks the name up in this node's scope and then in its ancestors'."""
        node = self
        while node is not None:
            if node.scope is not None and name in node.scope:
                return node.scope[name]
            node = node.parent
        return None

    # --- comparison helpers ---

    def structurally_equals(self, other: 'Node') -> bool:
        if not isinstance(other, Node):
            return False
        if self.tag != other.tag or self.attributes != other.attributes:
            return False
        if len(self.children) != len(other.children):
            return False
        return all(a.structurally_equals(b) for a, b in zip(self.children, other.children))

    def __len__(self) -> int:
        return len(self.children)

    def __getitem__(self, index: int) -> 'Node':
        return self.children[index]

    def __repr__(self) -> str:
        attrs = f" {self.attributes!r}" if self.attributes else ""
        kids = f" children={self.children!r}" if self.children else ""
        return f"Node<{self.tag}{attrs}{kids}>"


# =================================================================
# Literal constructors
# =================================================================

def null() -> Node:
    return Node(NULL)


def boolean(value: bool) -> Node:
    return Node(TRUE if value else FALSE)


def number(value) -> Node:
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        raise TypeError(f"number expects a numeric value, got {type(value).__name__}")
    return Node(NUMBER, attributes={"Value": value})


def string(value: str) -> Node:
    return Node(STRING, attributes={"Value": str(value)})


def symbol(name: str) -> Node:
    return Node(SYMBOL, attributes={"Name": name})


def list_of(*elements: Node) -> Node:
    return Node(LIST, [to_node(e) for e in elements])


def block(*children, description: str = DEFAULT_BLOCK_DESCRIPTION, expanded: bool = True) -> Node:
    return Node(Construct.BLOCK, [to_node(c) for c in children],
                {"Description": description, "Expanded": expanded})


def construct(tag, *children) -> Node:
    """Builds any node from a tag and children; Python literals are converted."""
    if tag == Construct.BLOCK:
        return block(*children)
    return Node(tag, [to_node(c) for c in children])


def to_node(value: Any) -> Node:
    """Converts a Python value to a literal node. Nodes pass through unchanged."""
    match value:
        case Node():
            return value
        case None:
            return null()
        case bool():
            return boolean(value)
        case int() | float() | Fraction():
            return number(value)
        case str():
            return string(value)
        case list() | tuple():
            return list_of(*value)
    raise TypeError(f"Cannot convert {type(value).__name__} to a node")


def to_python(node: Node) -> Any:
    """Converts a literal node back to a Python value; other nodes are returned as is."""
    match node.tag:
        case "Null":
            return None
        case "Logic.True":
            return True
        case "Logic.False":
            return False
        case "Math.Number" | "String.String":
            return node.get("Value")
        case "List.List":
            return [to_python(child) for child in node.children]
    return node
