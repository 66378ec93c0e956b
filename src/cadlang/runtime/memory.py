"""
Program Memory: the scoped name -> Value store of an execution pass.

Scopes form a chain via the lookup-only `parent` field. Only `define` in the
local scope writes bindings; nothing a child does can reach into an ancestor.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .values import Value, metadata_to_json
from ..tokens import SourceSpan, NO_SPAN
from ..errors import error_duplicate_binding, error_undefined_variable


@dataclass
class ProgramMemory:
    """
    A single scope containing variable bindings.

    Usage:
        memory = ProgramMemory()
        memory.define("a", number_val(3))
        body = memory.child_scope("fn")
        body.lookup("a")        # found through the parent chain
    """
    parent: Optional["ProgramMemory"] = None
    name: str = "root"
    bindings: Dict[str, Value] = field(default_factory=dict)

    def define(self, name: str, value: Value, span: SourceSpan = NO_SPAN) -> None:
        """Bind `name` in this scope; shadowing a parent binding is allowed."""
        if name in self.bindings:
            raise error_duplicate_binding(name, span)
        self.bindings[name] = value

    def lookup(self, name: str, span: SourceSpan = NO_SPAN) -> Value:
        """Resolve `name` here, then in each ancestor in order."""
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        raise error_undefined_variable(name, span)

    def get(self, name: str) -> Optional[Value]:
        """Like `lookup`, but returns None for unbound names."""
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def child_scope(self, name: str = "block") -> "ProgramMemory":
        return ProgramMemory(parent=self, name=name)

    def contains(self, name: str) -> bool:
        """Check if a name is visible from this scope."""
        return self.get(name) is not None

    def is_local(self, name: str) -> bool:
        return name in self.bindings

    def names(self) -> List[str]:
        """Visible names, nearest scope first, shadowed names listed once."""
        seen: List[str] = []
        scope = self
        while scope is not None:
            for name in scope.bindings:
                if name not in seen:
                    seen.append(name)
            scope = scope.parent
        return seen

    def local_items(self) -> List[Tuple[str, Value]]:
        return list(self.bindings.items())

    @property
    def root(self) -> "ProgramMemory":
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def snapshot(self, names: Optional[Iterable[str]] = None) -> "ProgramMemory":
        """
        A new isolated root scope seeded with copies of visible bindings.

        Values are immutable, so copying the mapping is enough to keep the
        snapshot from ever writing back into this memory.

        Args:
            names: Only copy these names (unbound ones are skipped); None
                copies everything visible.
        """
        wanted = self.names() if names is None else list(names)
        seeded = ProgramMemory(name="snapshot")
        for name in wanted:
            value = self.get(name)
            if value is not None:
                seeded.bindings[name] = value
        return seeded

    def to_json(self) -> Dict[str, Any]:
        """JSON-able dump of local bindings for tooling."""
        return {
            name: {
                "type": value.kind.value,
                "value": value.to_python(),
                "__meta": metadata_to_json(value),
            }
            for name, value in self.bindings.items()
        }
