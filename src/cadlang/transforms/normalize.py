"""
Sign normalisation of value expressions.

Editor tooling that writes a value back into the source (for example after a
drag that flips a dimension) applies a sign to an expression and wants the
result in its simplest form: `-(-x)` becomes `x` and `-(-5)` (a negative
literal under a minus) becomes `5`. The rewrite is purely syntactic.
"""

from dataclasses import dataclass
from typing import Optional

from .base import TreeTransform
from ..ast import Expression, Identifier, Literal, UnaryExpression


@dataclass(frozen=True)
class NormalizeOptions:
    """Which simplifications `normalize_sign` performs."""
    collapse_double_negation: bool = True
    fold_negative_literals: bool = True

    @classmethod
    def from_config(cls, config) -> "NormalizeOptions":
        return cls(
            collapse_double_negation=config.collapse_double_negation,
            fold_negative_literals=config.fold_negative_literals,
        )


DEFAULT_OPTIONS = NormalizeOptions()


def _is_negation(node: Expression) -> bool:
    return isinstance(node, UnaryExpression) and node.operator == "-"


def _is_negative_literal(node: Expression) -> bool:
    return (
        isinstance(node, Literal)
        and isinstance(node.value, (int, float))
        and not isinstance(node.value, bool)
        and node.value < 0
    )


def simplify_negation(node: Expression, options: NormalizeOptions = DEFAULT_OPTIONS) -> Expression:
    """Apply the enabled simplifications at the root of `node`."""
    if options.collapse_double_negation:
        while _is_negation(node) and _is_negation(node.argument):
            node = node.argument.argument
    if options.fold_negative_literals and _is_negation(node) and _is_negative_literal(node.argument):
        value = -node.argument.value
        node = Literal(span=node.span, value=value, raw=str(value))
    return node


def normalize_sign(
    value_node: Expression,
    sign: int = 1,
    variable_name: Optional[str] = None,
    options: Optional[NormalizeOptions] = None,
) -> Expression:
    """
    Apply `sign` to an expression and simplify the result.

    Args:
        value_node: The expression to normalise (not modified)
        sign: 1 or -1
        variable_name: When given, normalise a reference to this name
            instead of `value_node`
        options: Which simplifications to apply; both by default, whether
            or not a variable was substituted

    Returns:
        The normalised expression
    """
    if sign not in (1, -1):
        raise ValueError(f"sign must be 1 or -1, got {sign!r}")
    options = options or DEFAULT_OPTIONS

    if variable_name:
        node: Expression = Identifier(span=value_node.span, name=variable_name)
    else:
        node = value_node
    if sign == -1:
        node = UnaryExpression(span=node.span, operator="-", argument=node)
    return simplify_negation(node, options)


class SignNormalizeTransform(TreeTransform):
    """Simplifies every negation in a program, innermost first."""

    def __init__(self, options: Optional[NormalizeOptions] = None):
        self.options = options or DEFAULT_OPTIONS

    @property
    def name(self) -> str:
        return "sign-normalize"

    def visit_unary(self, node: UnaryExpression) -> Expression:
        rebuilt = super().visit_unary(node)
        return simplify_negation(rebuilt, self.options)
