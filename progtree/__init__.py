from progtree.progtree_datatypes import (
    Node, Scope, ScopeEntry, Construct, ReductionError, DeserializationError,
    null, boolean, number, string, symbol, list_of, block, construct, to_node, to_python,
)
from progtree.progtree_registry import ReducerRegistry, ReducerEntry, default_registry
from progtree.progtree_session import Session
from progtree.progtree_runtime import TreeRunner, ExecutionResult
from progtree.progtree_printer import Printer

__all__ = [
    "Node", "Scope", "ScopeEntry", "Construct", "ReductionError", "DeserializationError",
    "null", "boolean", "number", "string", "symbol", "list_of", "block", "construct",
    "to_node", "to_python",
    "ReducerRegistry", "ReducerEntry", "default_registry",
    "Session", "TreeRunner", "ExecutionResult", "Printer",
]
