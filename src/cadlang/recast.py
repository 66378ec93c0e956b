"""
Recast: print an AST back to cadlang source.

Parentheses are emitted only where operator precedence requires them, so
re-parsing the output yields a structurally equal tree.
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from .ast import (
    AstNode, Program, Statement, VariableDeclaration, ExpressionStatement, ReturnStatement,
    Expression, Literal, Identifier, BinaryExpression, UnaryExpression,
    CallExpression, ArrayExpression, ObjectExpression, MemberExpression,
    PipeExpression, PipeSubstitution, FunctionExpression,
)


@dataclass(frozen=True)
class FormatOptions:
    """Layout settings for recast output."""
    tab_size: int = 2
    use_tabs: bool = False
    insert_final_newline: bool = True

    def indent(self, level: int) -> str:
        if self.use_tabs:
            return "\t" * level
        return " " * (self.tab_size * level)


# Binding strength used to decide where parentheses are needed
_BINARY_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2, "%": 2}
_UNARY_PRECEDENCE = 3
_ATOM_PRECEDENCE = 4
_FUNCTION_PRECEDENCE = 0
_PIPE_PRECEDENCE = 0

_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
}


def _precedence(node: Expression) -> int:
    if isinstance(node, BinaryExpression):
        return _BINARY_PRECEDENCE[node.operator]
    if isinstance(node, UnaryExpression):
        return _UNARY_PRECEDENCE
    if isinstance(node, FunctionExpression):
        return _FUNCTION_PRECEDENCE
    if isinstance(node, PipeExpression):
        return _PIPE_PRECEDENCE
    if isinstance(node, Literal) and _literal_text(node).startswith("-"):
        return _UNARY_PRECEDENCE
    return _ATOM_PRECEDENCE


def _literal_text(node: Literal) -> str:
    if node.raw:
        return node.raw
    value = node.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"{value!r} has no source form")
        return repr(value)
    return quote_string(value)


def quote_string(value: str) -> str:
    """`value` as a double-quoted string literal."""
    return '"' + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + '"'


class Recaster:
    """Renders nodes to text at a given indentation level."""

    def __init__(self, options: Optional[FormatOptions] = None):
        self.options = options or FormatOptions()

    def program(self, node: Program) -> str:
        text = "\n".join(self.body(node.body, 0))
        if text and self.options.insert_final_newline:
            text += "\n"
        return text

    def body(self, statements: List[Statement], level: int) -> List[str]:
        indent = self.options.indent(level)
        return [indent + self.statement(stmt, level) for stmt in statements]

    def statement(self, node: Statement, level: int) -> str:
        if isinstance(node, VariableDeclaration):
            return f"{node.kind} {node.name} = {self.expression(node.init, level)}"
        if isinstance(node, ExpressionStatement):
            return self.expression(node.expression, level)
        if isinstance(node, ReturnStatement):
            return f"return {self.expression(node.argument, level)}"
        raise TypeError(f"cannot recast {type(node).__name__}")

    def expression(self, node: Expression, level: int) -> str:
        if isinstance(node, Literal):
            return _literal_text(node)
        if isinstance(node, Identifier):
            return node.name
        if isinstance(node, BinaryExpression):
            prec = _BINARY_PRECEDENCE[node.operator]
            left = self._operand(node.left, level, _precedence(node.left) < prec)
            right = self._operand(node.right, level, _precedence(node.right) <= prec)
            return f"{left} {node.operator} {right}"
        if isinstance(node, UnaryExpression):
            arg = self._operand(node.argument, level, _precedence(node.argument) < _UNARY_PRECEDENCE)
            return f"{node.operator}{arg}"
        if isinstance(node, CallExpression):
            args = ", ".join(self.expression(arg, level) for arg in node.arguments)
            return f"{node.callee.name}({args})"
        if isinstance(node, ArrayExpression):
            return "[" + ", ".join(self.expression(e, level) for e in node.elements) + "]"
        if isinstance(node, ObjectExpression):
            entries = ", ".join(
                f"{prop.key.name}: {self.expression(prop.value, level)}" for prop in node.properties
            )
            return "{" + entries + "}"
        if isinstance(node, MemberExpression):
            obj = node.object
            wrap = _precedence(obj) < _ATOM_PRECEDENCE or (
                isinstance(obj, Literal) and not isinstance(obj.value, (bool, str))
            )
            target = self._operand(obj, level, wrap)
            if node.computed:
                return f"{target}[{self.expression(node.property, level)}]"
            return f"{target}.{node.property.name}"
        if isinstance(node, PipeSubstitution):
            return "%"
        if isinstance(node, PipeExpression):
            first, *stages = node.body
            text = self._operand(first, level, _precedence(first) <= _PIPE_PRECEDENCE)
            stage_indent = self.options.indent(level + 1)
            for stage in stages:
                text += f"\n{stage_indent}|> {self.expression(stage, level + 1)}"
            return text
        if isinstance(node, FunctionExpression):
            params = ", ".join(param.name for param in node.params)
            if not node.body:
                return f"({params}) => {{}}"
            lines = self.body(node.body, level + 1)
            closing = self.options.indent(level) + "}"
            return f"({params}) => {{\n" + "\n".join(lines) + "\n" + closing
        raise TypeError(f"cannot recast {type(node).__name__}")

    def _operand(self, node: Expression, level: int, parenthesize: bool) -> str:
        text = self.expression(node, level)
        return f"({text})" if parenthesize else text


def recast(node: AstNode, options: Optional[FormatOptions] = None) -> str:
    """
    Print `node` as cadlang source.

    A Program is printed one statement per line; any other node is printed
    without a trailing newline.
    """
    recaster = Recaster(options)
    if isinstance(node, Program):
        return recaster.program(node)
    if isinstance(node, Statement):
        return recaster.statement(node, 0)
    return recaster.expression(node, 0)
