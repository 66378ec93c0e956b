"""
Runtime values for the cadlang executor.

A `Value` is a tagged variant: `kind` says which alternative it is, `data`
holds the payload and `meta` lists the (source range, AST path) pairs that
produced it. Geometry payloads are frozen dataclasses built from tuples, so
a value derived from another can never change its source after the fact.
"""

import math
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..tokens import SourceRange
from ..ast import Path


Point2D = Tuple[float, float]
Point3D = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]

ORIGIN: Point3D = (0.0, 0.0, 0.0)
IDENTITY_ROTATION: Quaternion = (0.0, 0.0, 0.0, 1.0)


class ValueKind(Enum):
    """The alternatives of the runtime value union."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    SKETCH_GROUP = "sketchGroup"
    EXTRUDE_GROUP = "extrudeGroup"
    FUNCTION = "function"
    USER_VAL = "userVal"


@dataclass(frozen=True)
class Metadata:
    """Links a value to the code that created it."""
    source_range: SourceRange
    path_to_node: Path = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "sourceRange": list(self.source_range),
            "pathToNode": list(self.path_to_node),
        }


# --- Geometry payloads ---

@dataclass(frozen=True)
class Segment:
    """A straight path segment of a sketch."""
    from_: Point2D
    to: Point2D
    name: str = ""
    source_range: SourceRange = SourceRange(0, 0)


@dataclass(frozen=True)
class SketchGroup:
    """A 2D profile: a pen start point followed by segments."""
    id: str
    start: Point2D
    segments: Tuple[Segment, ...] = ()
    position: Point3D = ORIGIN
    rotation: Quaternion = IDENTITY_ROTATION
    closed: bool = False

    @property
    def last_point(self) -> Point2D:
        if self.segments:
            return self.segments[-1].to
        return self.start

    def points(self) -> List[Point2D]:
        return [self.start] + [seg.to for seg in self.segments]


@dataclass(frozen=True)
class ExtrudeSurface:
    """A side wall generated by extruding one named sketch segment."""
    name: str
    position: Point3D
    rotation: Quaternion
    source_range: SourceRange = SourceRange(0, 0)


@dataclass(frozen=True)
class ExtrudeGroup:
    """A 3D solid made by extruding a SketchGroup."""
    id: str
    sketch_id: str
    height: float
    position: Point3D = ORIGIN
    rotation: Quaternion = IDENTITY_ROTATION
    surfaces: Tuple[ExtrudeSurface, ...] = ()

    def surface(self, name: str) -> Optional[ExtrudeSurface]:
        for surface in self.surfaces:
            if surface.name == name:
                return surface
        return None


@dataclass(frozen=True)
class UserFunction:
    """A user-defined function and the scope it closes over."""
    node: Any      # FunctionExpression
    closure: Any   # ProgramMemory

    @property
    def arity(self) -> int:
        return len(self.node.params)


# --- The value union ---

@dataclass(frozen=True)
class Value:
    """A runtime value: kind tag, payload and producing metadata."""
    kind: ValueKind
    data: Any
    meta: Tuple[Metadata, ...] = ()

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.data!r})"

    @property
    def is_number(self) -> bool:
        return self.kind == ValueKind.NUMBER

    def with_meta(self, *entries: Metadata) -> "Value":
        """Copy of this value with `entries` in place of its metadata."""
        return Value(self.kind, self.data, tuple(entries))

    def to_python(self) -> Any:
        """Plain Python view of the payload, for display and JSON output."""
        if self.kind == ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if self.kind == ValueKind.SKETCH_GROUP:
            return {
                "type": "sketchGroup",
                "id": self.data.id,
                "start": list(self.data.start),
                "segments": [
                    {"from": list(s.from_), "to": list(s.to), "name": s.name}
                    for s in self.data.segments
                ],
                "position": list(self.data.position),
                "rotation": list(self.data.rotation),
                "closed": self.data.closed,
            }
        if self.kind == ValueKind.EXTRUDE_GROUP:
            return {
                "type": "extrudeGroup",
                "id": self.data.id,
                "sketchId": self.data.sketch_id,
                "height": self.data.height,
                "position": list(self.data.position),
                "rotation": list(self.data.rotation),
                "surfaces": [
                    {"name": s.name, "position": list(s.position), "rotation": list(s.rotation)}
                    for s in self.data.surfaces
                ],
            }
        if self.kind == ValueKind.FUNCTION:
            return f"<function/{self.data.arity}>"
        if self.kind == ValueKind.USER_VAL:
            return _plain(self.data)
        return self.data


def _plain(data: Any) -> Any:
    """Host data with any nested Values replaced by their plain form."""
    if isinstance(data, Value):
        return data.to_python()
    if isinstance(data, dict):
        return {key: _plain(item) for key, item in data.items()}
    if isinstance(data, (list, tuple)):
        return [_plain(item) for item in data]
    return data


# Convenience constructors

def number_val(n: float, meta: Iterable[Metadata] = ()) -> Value:
    """Create a numeric value (ints are kept as ints)."""
    if isinstance(n, bool) or not isinstance(n, (int, float)):
        raise ValueError(f"not a number: {n!r}")
    return Value(ValueKind.NUMBER, n, tuple(meta))


def is_finite_number(n: Any) -> bool:
    """True for an int or float a 64-bit float can hold (no inf or NaN)."""
    if isinstance(n, bool) or not isinstance(n, (int, float)):
        return False
    if isinstance(n, int):
        return abs(n) <= sys.float_info.max
    return math.isfinite(n)


def string_val(s: str, meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.STRING, str(s), tuple(meta))


def bool_val(b: bool, meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.BOOLEAN, bool(b), tuple(meta))


def array_val(items: Iterable[Value], meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.ARRAY, tuple(items), tuple(meta))


def sketch_group_val(group: SketchGroup, meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.SKETCH_GROUP, group, tuple(meta))


def extrude_group_val(group: ExtrudeGroup, meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.EXTRUDE_GROUP, group, tuple(meta))


def function_val(func: UserFunction, meta: Iterable[Metadata] = ()) -> Value:
    return Value(ValueKind.FUNCTION, func, tuple(meta))


def user_val(data: Any, meta: Iterable[Metadata] = ()) -> Value:
    """Wrap an opaque host value (e.g. an externally seeded binding)."""
    return Value(ValueKind.USER_VAL, data, tuple(meta))


def wrap_value(data: Any, meta: Iterable[Metadata] = ()) -> Value:
    """Wrap a raw Python value, choosing the matching kind."""
    if isinstance(data, Value):
        return data
    if isinstance(data, bool):
        return bool_val(data, meta)
    if isinstance(data, (int, float)):
        return number_val(data, meta)
    if isinstance(data, str):
        return string_val(data, meta)
    if isinstance(data, (list, tuple)):
        return array_val([wrap_value(item) for item in data], meta)
    if isinstance(data, SketchGroup):
        return sketch_group_val(data, meta)
    if isinstance(data, ExtrudeGroup):
        return extrude_group_val(data, meta)
    return user_val(data, meta)


def unwrap_number(value: Value) -> Optional[float]:
    """The numeric payload of `value`, looking through USER_VAL wrappers."""
    if value.kind == ValueKind.NUMBER:
        return value.data
    if value.kind == ValueKind.USER_VAL:
        inner = value.data
        if isinstance(inner, Value):
            return unwrap_number(inner)
        if isinstance(inner, (int, float)) and not isinstance(inner, bool):
            return inner
    return None


def merge_meta(own: Metadata, *inputs: Value) -> Tuple[Metadata, ...]:
    """Own entry first, then every input's full chain, without duplicates."""
    merged = [own]
    for value in inputs:
        for entry in value.meta:
            if entry not in merged:
                merged.append(entry)
    return tuple(merged)


def metadata_to_json(value: Value) -> List[Dict[str, Any]]:
    """The metadata export consumed by editor tooling."""
    return [entry.to_json() for entry in value.meta]
