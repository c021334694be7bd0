"""
The reducer registry: a dispatch table from node tag to reduction rule.

Each entry records whether the session must fully reduce a node's
children before calling the reducer (pre_reduces_children=True), or
whether the reducer receives raw children and decides itself what to
reduce and when (a self-controlling reducer).
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

Reducer = Callable[[Any, Any], Awaitable[bool]]
Arity = Callable[[int], bool]


@dataclass(frozen=True)
class ReducerEntry:
    reducer: Reducer
    name: str
    pre_reduces_children: bool = True
    arity: Optional[Arity] = None

    def accepts(self, count: int) -> bool:
        return self.arity is None or self.arity(count)


def exactly(n: int) -> Arity:
    return lambda count: count == n


def between(low: int, high: int) -> Arity:
    return lambda count: low <= count <= high


def at_least(n: int) -> Arity:
    return lambda count: count >= n


class ReducerRegistry:
    """Maps tags to ReducerEntry objects."""

    def __init__(self):
        self._entries: Dict[str, ReducerEntry] = {}

    def add_reducer(self, tag, reducer: Reducer, name: Optional[str] = None, *,
                    pre_reduces_children: bool = True, arity: Optional[Arity] = None):
        tag = str(tag)
        if tag in self._entries:
            raise ValueError(f"A reducer is already registered for {tag!r}")
        self._entries[tag] = ReducerEntry(
            reducer=reducer,
            name=name or getattr(reducer, "__name__", "<reducer>"),
            pre_reduces_children=pre_reduces_children,
            arity=arity,
        )

    def get(self, tag) -> Optional[ReducerEntry]:
        return self._entries.get(str(tag))

    def __contains__(self, tag) -> bool:
        return str(tag) in self._entries

    def tags(self):
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)


def default_registry() -> ReducerRegistry:
    """A registry with the primitive library and all programming constructs."""
    from progtree import progtree_primitives, progtree_reducers
    registry = ReducerRegistry()
    progtree_primitives.set_reducers(registry)
    progtree_reducers.set_reducers(registry)
    return registry
