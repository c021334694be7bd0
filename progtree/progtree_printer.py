"""
A pretty-printer for progtree expression trees.
"""
import re

from progtree.progtree_datatypes import (
    Node, Construct,
    NULL, TRUE, FALSE, NUMBER, STRING, LIST, SYMBOL, ASSIGNMENT,
    ADDITION, MULTIPLICATION, NEGATIVE,
    EQUALS, NOT_EQUALS, LESS, LESS_OR_EQUALS, GREATER, GREATER_OR_EQUALS,
    COMPARE, IN, NEGATION, EMIT, HOLDER,
    COMPARISON_LESS, COMPARISON_EQUALS, COMPARISON_GREATER, COMPARISON_DIFFERENT,
)

_INFIX = {
    ADDITION: "+",
    MULTIPLICATION: "*",
    EQUALS: "=",
    NOT_EQUALS: "≠",
    LESS: "<",
    LESS_OR_EQUALS: "≤",
    GREATER: ">",
    GREATER_OR_EQUALS: "≥",
    COMPARE: "<=>",
    IN: "∈",
}


def construct_name(tag: str) -> str:
    """'Programming.InvertedForTimes' -> 'inverted-for-times'"""
    short = str(tag).rsplit(".", 1)[-1]
    return re.sub(r"(?<!^)(?=[A-Z])", "-", short).lower()


class Printer:
    """Formats nodes into readable one-line text."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a node."""
        if not isinstance(obj, Node):
            return repr(obj)
        handler = self._handlers.get(obj.tag)
        if handler is None:
            if obj.tag in _INFIX:
                return self._pformat_infix(obj)
            if obj.tag.startswith("Programming."):
                return self._pformat_construct(obj)
            return self._pformat_generic(obj)
        return handler(obj)

    def _create_handlers(self):
        return {
            NULL: lambda n: "none",
            TRUE: lambda n: "true",
            FALSE: lambda n: "false",
            COMPARISON_LESS: lambda n: "less",
            COMPARISON_EQUALS: lambda n: "equals",
            COMPARISON_GREATER: lambda n: "greater",
            COMPARISON_DIFFERENT: lambda n: "different",
            NUMBER: self._pformat_number,
            STRING: self._pformat_str,
            SYMBOL: self._pformat_symbol,
            LIST: self._pformat_list,
            ASSIGNMENT: self._pformat_assignment,
            NEGATIVE: self._pformat_negative,
            NEGATION: self._pformat_negation,
            EMIT: self._pformat_emit,
            HOLDER: lambda n: self._join(n.children, "; "),
            str(Construct.BLOCK): self._pformat_block,
        }

    def _join(self, children, sep=", ") -> str:
        return sep.join(self.pformat(c) for c in children)

    def _operand(self, node: Node) -> str:
        # parenthesize nested operators
        text = self.pformat(node)
        if node.tag in _INFIX or node.tag == ASSIGNMENT:
            return f"({text})"
        return text

    def _pformat_number(self, node):
        # Fraction renders as '1/3'
        return str(node.get("Value"))

    def _pformat_str(self, node):
        # Basic string formatting, does not handle complex escapes
        return f"'{node.get('Value')}'"

    def _pformat_symbol(self, node):
        return str(node.get("Name"))

    def _pformat_list(self, node):
        return f"#[{self._join(node.children)}]"

    def _pformat_assignment(self, node):
        if len(node.children) != 2:
            return self._pformat_generic(node)
        target, value = node.children
        return f"{self.pformat(target)} := {self._operand(value)}"

    def _pformat_negative(self, node):
        if len(node.children) != 1:
            return self._pformat_generic(node)
        return f"-{self._operand(node.children[0])}"

    def _pformat_negation(self, node):
        if len(node.children) != 1:
            return self._pformat_generic(node)
        return f"not {self._operand(node.children[0])}"

    def _pformat_emit(self, node):
        return f"emit({self._join(node.children)})"

    def _pformat_infix(self, node):
        if len(node.children) < 2:
            return self._pformat_generic(node)
        op = _INFIX[node.tag]
        return f" {op} ".join(self._operand(c) for c in node.children)

    def _pformat_block(self, node):
        description = node.get("Description")
        head = f"block '{description}'" if description else "block"
        return f"{head} [{self._join(node.children, '; ')}]"

    def _pformat_construct(self, node):
        return f"{construct_name(node.tag)}({self._join(node.children)})"

    def _pformat_generic(self, node):
        if not node.children:
            return node.tag
        return f"{node.tag}({self._join(node.children)})"
