"""
Source-editing transforms: replace the expression at a range, rename names.
"""

import re
from typing import Any, List, Set, Union

from .base import TreeTransform
from ..ast import (
    Expression, Identifier, Literal, Program, Statement, UnaryExpression,
    VariableDeclaration, FunctionExpression,
)
from ..recast import quote_string
from ..runtime.values import is_finite_number
from ..tokens import KEYWORDS, SourceRange, SourceSpan

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


def make_literal(value: Union[int, float, str, bool], span: SourceSpan) -> Literal:
    """
    A Literal node for a plain Python value, with source-style `raw` text.

    Numbers must be finite and not negative, since a literal has no sign;
    see `make_value_expression` for negative numbers.

    Raises:
        TypeError: For values that have no literal form
        ValueError: For negative or non-finite numbers
    """
    if isinstance(value, bool):
        raw = "true" if value else "false"
    elif isinstance(value, (int, float)):
        if not is_finite_number(value):
            raise ValueError(f"{value!r} has no literal form")
        if value < 0:
            raise ValueError(f"{value!r} is negative; literals are unsigned")
        raw = repr(value)
    elif isinstance(value, str):
        raw = quote_string(value)
    else:
        raise TypeError(f"cannot make a literal from {type(value).__name__}")
    return Literal(span=span, value=value, raw=raw)


def make_value_expression(value: Union[int, float, str, bool], span: SourceSpan) -> Expression:
    """Like `make_literal`, but negative numbers become a negated Literal."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
        return UnaryExpression(span=span, operator="-", argument=make_literal(-value, span))
    return make_literal(value, span)


class ReplaceValueTransform(TreeTransform):
    """Replaces the outermost expression whose range equals `source_range`."""

    def __init__(self, source_range: SourceRange, new_value: Any):
        self.source_range = SourceRange(*source_range)
        self.new_value = new_value
        self.replaced = False

    @property
    def name(self) -> str:
        return "replace-value"

    def visit_expression(self, node: Expression) -> Expression:
        if not self.replaced and node.source_range == self.source_range:
            self.replaced = True
            if isinstance(self.new_value, Expression):
                return super().visit_expression(self.new_value)
            return make_value_expression(self.new_value, node.span)
        return super().visit_expression(node)


class RenameTransform(TreeTransform):
    """
    Renames the script-level binding `old_name` and every reference to it.

    Function parameters and function-local declarations that reuse the name
    shadow it; neither they nor references resolving to them are renamed.
    Calls are renamed only when the script itself declares `old_name` at top
    level, so standard library functions keep their names.
    """

    def __init__(self, old_name: str, new_name: str):
        if not _IDENTIFIER.match(new_name) or new_name in KEYWORDS:
            raise ValueError(f"{new_name!r} is not a valid identifier")
        self.old_name = old_name
        self.new_name = new_name
        self._scopes: List[Set[str]] = []
        self._declared = False

    @property
    def name(self) -> str:
        return "rename"

    def transform(self, program: Program) -> Program:
        self._scopes = []
        self._declared = program.get_variable(self.old_name) is not None
        return super().transform(program)

    def _shadowed(self) -> bool:
        return any(self.old_name in scope for scope in self._scopes)

    def _rename(self, node: Identifier) -> Identifier:
        if node.name == self.old_name and not self._shadowed():
            return Identifier(span=node.span, name=self.new_name)
        return Identifier(span=node.span, name=node.name)

    def visit_variable_declaration(self, node: VariableDeclaration) -> Statement:
        init = self.visit_expression(node.init)
        if self._scopes:
            # Local binding: visible to later statements of this body only
            self._scopes[-1].add(node.name)
            ident = Identifier(span=node.id.span, name=node.name)
        else:
            ident = self._rename(node.id)
        return VariableDeclaration(span=node.span, kind=node.kind, id=ident, init=init)

    def visit_function(self, node: FunctionExpression) -> Expression:
        self._scopes.append({param.name for param in node.params})
        try:
            return FunctionExpression(
                span=node.span,
                params=[Identifier(span=param.span, name=param.name) for param in node.params],
                body=self.visit_body(node.body),
            )
        finally:
            self._scopes.pop()

    def visit_identifier(self, node: Identifier) -> Expression:
        return self._rename(node)

    def visit_callee(self, node: Identifier) -> Identifier:
        if not self._declared:
            return Identifier(span=node.span, name=node.name)
        return self._rename(node)


def replace_value(program: Program, source_range: SourceRange, new_value: Any) -> Program:
    """
    Return a copy of `program` with the expression at `source_range` replaced.

    Args:
        new_value: An Expression node, or a number/string/boolean that is
            turned into a Literal (negated when the number is negative)

    Raises:
        ValueError: If no expression spans exactly `source_range`, or the
            number is not finite
    """
    transform = ReplaceValueTransform(source_range, new_value)
    result = transform.transform(program)
    if not transform.replaced:
        raise ValueError(f"no expression spans {list(source_range)}")
    return result


def rename_identifiers(program: Program, old_name: str, new_name: str) -> Program:
    """Return a copy of `program` with the binding `old_name` renamed to `new_name`."""
    return RenameTransform(old_name, new_name).transform(program)
