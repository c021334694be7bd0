"""
The reduction session: generic bottom-up reduction of an expression tree.

The session looks each node's tag up in the reducer registry. Children
are reduced first, left to right, unless the registered reducer is
self-controlling. Reducers may only suspend by awaiting the session, so
the only suspension points are child reductions.
"""
import asyncio
import os
import sys
from typing import Any, Dict, List, Optional

from progtree.progtree_datatypes import Node, Scope, ScopeEntry, ReductionError, HOLDER
from progtree.progtree_registry import ReducerRegistry, default_registry

DEFAULT_MAX_LOOP_ITERS = 100000
DEFAULT_YIELD_EVERY = 100


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


class Session:
    """Drives the reduction of one tree at a time."""

    def __init__(self, registry: Optional[ReducerRegistry] = None, root_scope: Optional[Scope] = None, *,
                 max_loop_iters: Optional[int] = None, yield_every: Optional[int] = None):
        self.registry = registry if registry is not None else default_registry()
        self.root_scope = root_scope if root_scope is not None else Scope()
        self.side_effects: List[Dict[str, Any]] = []
        self.error_node: Optional[Node] = None
        self.reduction_count = 0
        # 0 disables the cap / the cooperative yield
        self.max_loop_iters = max_loop_iters if max_loop_iters is not None else \
            _env_int("PROGTREE_MAX_LOOP_ITERS", DEFAULT_MAX_LOOP_ITERS)
        self.yield_every = yield_every if yield_every is not None else \
            _env_int("PROGTREE_YIELD_EVERY", DEFAULT_YIELD_EVERY)

    def _dbg(self, *parts):
        if os.environ.get("PROGTREE_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    async def reduce(self, node: Node):
        """Reduces node in place. The node may end up replaced in its parent's slot."""
        self.reduction_count += 1
        if self.yield_every and self.reduction_count % self.yield_every == 0:
            await asyncio.sleep(0)

        entry = self.registry.get(node.tag)
        if entry is None:
            # No rule for this tag: it is in normal form once its children are.
            for i in range(len(node.children)):
                await self.reduce(node.children[i])
            return

        if not entry.accepts(len(node.children)):
            raise self.fail(node, "Invalid number of children")

        if entry.pre_reduces_children:
            for i in range(len(node.children)):
                await self.reduce(node.children[i])

        self._dbg("reduce", node.tag, "via", entry.name)
        await entry.reducer(node, self)

    async def reduce_and_get(self, node: Node, index: int) -> Node:
        """Reduces node and returns whatever occupies its slot afterwards."""
        parent = node.parent
        await self.reduce(node)
        if parent is None:
            return node
        return parent.children[index]

    async def reduce_tree(self, expr: Node) -> Node:
        """Reduces a detached tree and returns its normal form."""
        holder = Node(HOLDER, [expr])
        await self.reduce(holder.children[0])
        result = holder.children[0]
        result.parent = None
        return result

    # --- scopes ---

    def lookup(self, node: Node, name: str) -> Optional[ScopeEntry]:
        """Finds the cell for name as seen from node, falling back to the root scope."""
        entry = node.find_scope_entry(name)
        if entry is None:
            entry = self.root_scope.get(name)
        return entry

    # --- diagnostics ---

    def set_in_error(self, node: Node, message: str):
        node.error = message
        self.error_node = node
        self._dbg("error", node.tag, message)

    def fail(self, node: Node, message: str) -> ReductionError:
        """Marks node and returns the error for the caller to raise."""
        self.set_in_error(node, message)
        return ReductionError(message, node)

    def check_iterations(self, node: Node, passes: int):
        if self.max_loop_iters and passes >= self.max_loop_iters:
            raise self.fail(node, "Iteration limit exceeded")
