"""
Standard library for the cadlang executor.

Every library function receives a `CallContext` followed by its evaluated
arguments. Functions that touch engine state follow one contract:

1. derive a command id from the code, the call's range and every input that
   shapes the result (`identity.command_id`),
2. submit exactly one `ModelingCommand` through the context's manager,
3. return a value whose metadata is the call's own entry followed by the
   metadata of every input value.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .values import (
    Value, ValueKind, Metadata, Segment, SketchGroup, ExtrudeGroup, Point2D,
    number_val, sketch_group_val, extrude_group_val, user_val,
    unwrap_number, is_finite_number, merge_meta,
)
from .commands import (
    CommandManager, NullCommandManager, ModelingCommand, CommandPayload,
    StartPath, ExtendPath, ClosePath, Extrude,
)
from .identity import command_id
from .geometry import wall_surfaces
from ..ast import Path
from ..tokens import SourceRange, SourceSpan, NO_SPAN
from ..errors import TypeMismatch, error_type_mismatch


@dataclass
class CallContext:
    """What a library function knows about the call site."""
    code: str
    source_range: SourceRange
    path_to_node: Path
    command_manager: CommandManager = field(default_factory=NullCommandManager)
    span: SourceSpan = NO_SPAN
    shown: List[Value] = field(default_factory=list)

    @property
    def own_meta(self) -> Metadata:
        return Metadata(self.source_range, self.path_to_node)

    def type_error(self, message: str) -> TypeMismatch:
        return error_type_mismatch(message, self.span)

    def submit(self, cmd_id: str, payload: CommandPayload) -> ModelingCommand:
        command = ModelingCommand(id=cmd_id, range=self.source_range, cmd=payload)
        self.command_manager.send_modeling_command(command)
        return command


@dataclass
class BuiltinFunction:
    """
    A library function with its implementation and accepted argument counts.

    `arity` is (min, max); max None means variadic.
    """
    name: str
    implementation: Callable[..., Value]
    arity: Tuple[int, Optional[int]] = (0, None)
    engine: bool = False
    doc: str = ""

    def accepts(self, count: int) -> bool:
        low, high = self.arity
        return count >= low and (high is None or count <= high)

    def describe_arity(self) -> str:
        low, high = self.arity
        if high is None:
            return f"at least {low}"
        if low == high:
            return str(low)
        return f"{low} to {high}"


# --- Argument checks ---

def _number(ctx: CallContext, value: Value, what: str) -> float:
    n = unwrap_number(value)
    if n is None:
        raise ctx.type_error(f"{what} must be a number, got {value.kind.value}")
    if not is_finite_number(n):
        raise ctx.type_error(f"{what} must be a finite number")
    return n


def _checked(ctx: CallContext, name: str, compute: Callable[[], float]) -> float:
    """Run a numeric computation, reporting overflow and domain errors."""
    try:
        result = compute()
    except (OverflowError, ValueError) as exc:
        raise ctx.type_error(f"{name}() result is out of range") from exc
    if not is_finite_number(result):
        raise ctx.type_error(f"{name}() result is out of range")
    return result


def _point(ctx: CallContext, value: Value, what: str) -> Point2D:
    if value.kind != ValueKind.ARRAY or len(value.data) != 2:
        raise ctx.type_error(f"{what} must be a [x, y] array")
    x, y = value.data
    return (float(_number(ctx, x, what)), float(_number(ctx, y, what)))


def _sketch(ctx: CallContext, value: Value) -> SketchGroup:
    if value.kind != ValueKind.SKETCH_GROUP:
        raise ctx.type_error(f"expected a sketch, got {value.kind.value}")
    return value.data


def _extrusion(ctx: CallContext, value: Value) -> ExtrudeGroup:
    if value.kind != ValueKind.EXTRUDE_GROUP:
        raise ctx.type_error(f"expected an extrusion, got {value.kind.value}")
    return value.data


def _tag(ctx: CallContext, value: Optional[Value]) -> Optional[str]:
    if value is None:
        return None
    if value.kind != ValueKind.STRING:
        raise ctx.type_error(f"segment tag must be a string, got {value.kind.value}")
    return value.data


class BuiltinRegistry:
    """
    Registry of all library functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function (replacing any with the same name)."""
        self._functions[func.name] = func

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def _register_all(self) -> None:
        self._register_math_functions()
        self._register_triangle_functions()
        self._register_utility_functions()
        self._register_sketch_functions()
        self._register_extrude_functions()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register mathematical functions (angles in radians)."""

        def _unary(name: str, fn: Callable[[float], float]) -> Callable[..., Value]:
            def impl(ctx: CallContext, x: Value) -> Value:
                n = _number(ctx, x, "argument")
                return number_val(_checked(ctx, name, lambda: fn(n)), (ctx.own_meta,))
            return impl

        def _sqrt(ctx: CallContext, x: Value) -> Value:
            n = _number(ctx, x, "argument")
            if n < 0:
                raise ctx.type_error("sqrt of a negative number")
            return number_val(_checked(ctx, "sqrt", lambda: math.sqrt(n)), (ctx.own_meta,))

        def _abs(ctx: CallContext, x: Value) -> Value:
            return number_val(abs(_number(ctx, x, "argument")), (ctx.own_meta,))

        def _min(ctx: CallContext, *args: Value) -> Value:
            return number_val(min(_number(ctx, a, "argument") for a in args), (ctx.own_meta,))

        def _max(ctx: CallContext, *args: Value) -> Value:
            return number_val(max(_number(ctx, a, "argument") for a in args), (ctx.own_meta,))

        def _pow(ctx: CallContext, base: Value, exp: Value) -> Value:
            b = _number(ctx, base, "base")
            e = _number(ctx, exp, "exponent")
            return number_val(_checked(ctx, "pow", lambda: math.pow(b, e)), (ctx.own_meta,))

        def _pi(ctx: CallContext) -> Value:
            return number_val(math.pi, (ctx.own_meta,))

        math_funcs = [
            ("sin", (1, 1), _unary("sin", math.sin)),
            ("cos", (1, 1), _unary("cos", math.cos)),
            ("tan", (1, 1), _unary("tan", math.tan)),
            ("sqrt", (1, 1), _sqrt),
            ("abs", (1, 1), _abs),
            ("min", (1, None), _min),
            ("max", (1, None), _max),
            ("pow", (2, 2), _pow),
            ("pi", (0, 0), _pi),
        ]
        for name, arity, impl in math_funcs:
            self.register(BuiltinFunction(name, impl, arity))

    # --- Right triangle helpers ---

    def _register_triangle_functions(self) -> None:
        """Leg length and angles (degrees) of a right triangle."""

        def _legs(ctx: CallContext, hypotenuse: Value, leg: Value) -> Tuple[float, float]:
            hyp = _number(ctx, hypotenuse, "hypotenuse")
            if hyp <= 0:
                raise ctx.type_error("hypotenuse must be positive")
            return float(hyp), min(abs(float(_number(ctx, leg, "leg"))), float(hyp))

        def _leg_len(ctx: CallContext, hypotenuse: Value, leg: Value) -> Value:
            hyp, side = _legs(ctx, hypotenuse, leg)
            ratio = side / hyp
            root = _checked(ctx, "legLen", lambda: hyp * math.sqrt((1 - ratio) * (1 + ratio)))
            return number_val(root, (ctx.own_meta,))

        def _leg_ang_x(ctx: CallContext, hypotenuse: Value, leg: Value) -> Value:
            hyp, side = _legs(ctx, hypotenuse, leg)
            return number_val(math.degrees(math.acos(side / hyp)), (ctx.own_meta,))

        def _leg_ang_y(ctx: CallContext, hypotenuse: Value, leg: Value) -> Value:
            hyp, side = _legs(ctx, hypotenuse, leg)
            return number_val(math.degrees(math.asin(side / hyp)), (ctx.own_meta,))

        self.register(BuiltinFunction("legLen", _leg_len, (2, 2)))
        self.register(BuiltinFunction("legAngX", _leg_ang_x, (2, 2)))
        self.register(BuiltinFunction("legAngY", _leg_ang_y, (2, 2)))

    # --- Utility Functions ---

    def _register_utility_functions(self) -> None:

        def _show(ctx: CallContext, *args: Value) -> Value:
            ctx.shown.extend(args)
            return args[0]

        self.register(BuiltinFunction(
            "show", _show, (1, None),
            doc="Record values for the host to display; returns the first.",
        ))

    # --- Sketch Functions ---

    def _register_sketch_functions(self) -> None:
        """Path construction; every call issues one engine command."""

        def _start_sketch_at(ctx: CallContext, at: Value) -> Value:
            start = _point(ctx, at, "start point")
            cmd_id = command_id(ctx.code, ctx.source_range, {"at": start})
            ctx.submit(cmd_id, StartPath(at=start))
            group = SketchGroup(id=cmd_id, start=start)
            return sketch_group_val(group, merge_meta(ctx.own_meta, at))

        def _extend(ctx: CallContext, sketch_val: Value, sketch: SketchGroup,
                    to: Point2D, tag: Optional[str], inputs: dict,
                    extra: Tuple[Value, ...]) -> Value:
            cmd_id = command_id(ctx.code, ctx.source_range, inputs)
            segment = Segment(
                from_=sketch.last_point, to=to, name=tag or "",
                source_range=ctx.source_range,
            )
            ctx.submit(cmd_id, ExtendPath(
                path=sketch.id,
                segment={"type": "line", "to": [to[0], to[1], 0.0]},
            ))
            group = dataclasses.replace(sketch, segments=sketch.segments + (segment,))
            return sketch_group_val(group, merge_meta(ctx.own_meta, *extra, sketch_val))

        def _line_to(ctx: CallContext, to: Value, sketch_val: Value,
                     tag: Optional[Value] = None) -> Value:
            point = _point(ctx, to, "end point")
            sketch = _sketch(ctx, sketch_val)
            name = _tag(ctx, tag)
            inputs = {"to": point, "sketch": sketch, "tag": name}
            return _extend(ctx, sketch_val, sketch, point, name, inputs, (to,))

        def _line(ctx: CallContext, delta: Value, sketch_val: Value,
                  tag: Optional[Value] = None) -> Value:
            dx, dy = _point(ctx, delta, "delta")
            sketch = _sketch(ctx, sketch_val)
            name = _tag(ctx, tag)
            x, y = sketch.last_point
            inputs = {"delta": (dx, dy), "sketch": sketch, "tag": name}
            return _extend(ctx, sketch_val, sketch, (x + dx, y + dy), name, inputs, (delta,))

        def _close(ctx: CallContext, sketch_val: Value, tag: Optional[Value] = None) -> Value:
            sketch = _sketch(ctx, sketch_val)
            name = _tag(ctx, tag)
            cmd_id = command_id(ctx.code, ctx.source_range, {"sketch": sketch, "tag": name})
            ctx.submit(cmd_id, ClosePath(path=sketch.id))
            segment = Segment(
                from_=sketch.last_point, to=sketch.start, name=name or "",
                source_range=ctx.source_range,
            )
            group = dataclasses.replace(
                sketch, segments=sketch.segments + (segment,), closed=True,
            )
            return sketch_group_val(group, merge_meta(ctx.own_meta, sketch_val))

        self.register(BuiltinFunction(
            "startSketchAt", _start_sketch_at, (1, 1), engine=True,
            doc="Begin a new path at [x, y].",
        ))
        self.register(BuiltinFunction(
            "lineTo", _line_to, (2, 3), engine=True,
            doc="Straight segment to the absolute point [x, y], optionally tagged.",
        ))
        self.register(BuiltinFunction(
            "line", _line, (2, 3), engine=True,
            doc="Straight segment by the relative offset [dx, dy], optionally tagged.",
        ))
        self.register(BuiltinFunction(
            "close", _close, (1, 2), engine=True,
            doc="Segment back to the start point.",
        ))

    # --- Extrusion ---

    def _register_extrude_functions(self) -> None:

        def _extrude(ctx: CallContext, length: Value, sketch_val: Value) -> Value:
            distance = _number(ctx, length, "extrude length")
            sketch = _sketch(ctx, sketch_val)
            cmd_id = command_id(ctx.code, ctx.source_range, {"length": distance, "sketch": sketch})
            ctx.submit(cmd_id, Extrude(target=sketch.id, distance=distance, cap=True))
            group = ExtrudeGroup(
                id=cmd_id,
                sketch_id=sketch.id,
                height=distance,
                position=sketch.position,
                rotation=sketch.rotation,
                surfaces=wall_surfaces(sketch, distance),
            )
            return extrude_group_val(group, merge_meta(ctx.own_meta, length, sketch_val))

        def _get_extrude_wall_transform(ctx: CallContext, tag: Value, extrusion: Value) -> Value:
            name = _tag(ctx, tag)
            group = _extrusion(ctx, extrusion)
            surface = group.surface(name)
            if surface is None:
                raise ctx.type_error(f"could not find path with name {name}")
            return user_val(
                {"position": list(surface.position), "quaternion": list(surface.rotation)},
                merge_meta(ctx.own_meta, extrusion),
            )

        self.register(BuiltinFunction(
            "extrude", _extrude, (2, 2), engine=True,
            doc="Extrude a sketch by length into a capped solid.",
        ))
        self.register(BuiltinFunction(
            "getExtrudeWallTransform", _get_extrude_wall_transform, (2, 2),
            doc="Position and quaternion of the wall made by a tagged segment.",
        ))


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global library registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry
