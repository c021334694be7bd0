# progtree_runtime.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from progtree.progtree_datatypes import (
    Node, Scope, ScopeEntry, ReductionError, DeserializationError, to_node,
)
from progtree.progtree_printer import Printer
from progtree.progtree_registry import ReducerRegistry, default_registry
from progtree.progtree_serialize import deserialize
from progtree.progtree_session import Session


@dataclass
class ExecutionResult:
    """The structured result of reducing one tree."""
    status: Literal['success', 'error']
    value: Optional[Node] = None
    error_message: Optional[str] = None
    error_node: Optional[Node] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class TreeRunner:
    """Reduces expression trees against a persistent root scope."""

    def __init__(self, registry: Optional[ReducerRegistry] = None, **session_options):
        self.registry = registry if registry is not None else default_registry()
        self.root_scope = Scope()
        self.printer = Printer()
        self.session = Session(self.registry, self.root_scope, **session_options)

    def bind(self, name: str, value: Any):
        """Binds a global; Python values are converted to literal nodes."""
        self.root_scope.put(name, ScopeEntry(to_node(value)))

    def lookup(self, name: str) -> Optional[Node]:
        entry = self.root_scope.get(name)
        return entry.get_value() if entry is not None else None

    def _format_runtime_error(self, e: Exception, node: Optional[Node]) -> str:
        match e:
            case ReductionError():
                msg = f"ReductionError: {e.message}"
            case _:
                msg = f"InternalError: {e}"
        if node is not None:
            msg = f"{msg}\n{self.printer.pformat(node)}"
        return msg

    async def handle_tree(self, expr: Node) -> ExecutionResult:
        """The main entry point to reduce a tree."""
        self.session.side_effects.clear()
        self.session.error_node = None
        try:
            result = await self.session.reduce_tree(expr)
        except Exception as e:
            node = e.node if isinstance(e, ReductionError) else self.session.error_node
            msg = self._format_runtime_error(e, node)
            self.session.side_effects.append({'topics': ['stderr'], 'message': msg})
            return ExecutionResult(
                status='error',
                error_message=msg,
                error_node=node,
                side_effects=list(self.session.side_effects),
            )
        return ExecutionResult(
            status='success',
            value=result,
            side_effects=list(self.session.side_effects),
        )

    async def handle_document(self, source, *, fmt: Optional[str] = None,
                              content_type: Optional[str] = None) -> ExecutionResult:
        """Deserializes a tree document and reduces it."""
        try:
            expr = deserialize(source, fmt=fmt, content_type=content_type)
        except DeserializationError as e:
            msg = f"ParseError: {e}"
            return ExecutionResult(
                status='error',
                error_message=msg,
                side_effects=[{'topics': ['stderr'], 'message': msg}],
            )
        return await self.handle_tree(expr)
