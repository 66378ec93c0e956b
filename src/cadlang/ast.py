"""
Abstract Syntax Tree (AST) node definitions for cadlang.

Every node records the span of source text it was parsed from and, once the
parser has finished, its `path`: the child indices leading from the Program
root down to the node. Together they let editor tooling map any runtime
value back to the exact text and tree position that produced it.

Child index conventions used by `children()` and paths (source order):

    Program / function body   i -> body[i]
    VariableDeclaration       0 -> id, 1 -> init
    ExpressionStatement       0 -> expression
    ReturnStatement           0 -> argument
    BinaryExpression          0 -> left, 1 -> right
    UnaryExpression           0 -> argument
    CallExpression            0 -> callee, i + 1 -> arguments[i]
    ArrayExpression           i -> elements[i]
    ObjectExpression          i -> properties[i]
    ObjectProperty            0 -> key, 1 -> value
    MemberExpression          0 -> object, 1 -> property
    PipeExpression            i -> body[i]
    FunctionExpression        i -> params[i], len(params) + j -> body[j]
"""

from dataclasses import dataclass, field, fields
from typing import Iterator, List, Optional, Tuple, Union, Any
from abc import ABC
from .tokens import SourceSpan, SourceRange


Path = Tuple[int, ...]


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for highlighting and errors
    path: Path = field(default=(), init=False, compare=False, repr=False)

    @property
    def source_range(self) -> SourceRange:
        return self.span.range

    @property
    def start(self) -> int:
        return self.span.start.offset

    @property
    def end(self) -> int:
        return self.span.end.offset


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""


@dataclass
class Literal(Expression):
    """A numeric, string or boolean literal."""
    value: Union[int, float, str, bool]
    raw: str = ""


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class BinaryExpression(Expression):
    """A binary arithmetic operation (e.g. a + b)."""
    operator: str
    left: Expression
    right: Expression


@dataclass
class UnaryExpression(Expression):
    """A unary operation (-x or !flag)."""
    operator: str
    argument: Expression


@dataclass
class CallExpression(Expression):
    """A call into the standard library or a user function."""
    callee: Identifier
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class ArrayExpression(Expression):
    """An array literal (e.g. [1, 2])."""
    elements: List[Expression] = field(default_factory=list)


@dataclass
class ObjectProperty(AstNode):
    """One `key: value` entry of an object literal."""
    key: Identifier
    value: Expression


@dataclass
class ObjectExpression(Expression):
    """An object literal (e.g. {x: 1, y: 2})."""
    properties: List[ObjectProperty] = field(default_factory=list)


@dataclass
class MemberExpression(Expression):
    """
    Property or index access.

    `obj.name` has an Identifier property and computed False;
    `obj[expr]` has any expression as property and computed True.
    """
    object: Expression
    property: Expression
    computed: bool = False


@dataclass
class PipeSubstitution(Expression):
    """`%`: the value flowing out of the previous pipe stage."""


@dataclass
class PipeExpression(Expression):
    """`a |> f(%) |> g(%)`: stages evaluated left to right."""
    body: List[Expression] = field(default_factory=list)


@dataclass
class FunctionExpression(Expression):
    """A user function: (a, b) => { ... return a + b }."""
    params: List[Identifier]
    body: List["Statement"] = field(default_factory=list)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""


@dataclass
class VariableDeclaration(Statement):
    """A binding: const name = init (also let / var / fn)."""
    kind: str
    id: Identifier
    init: Expression

    @property
    def name(self) -> str:
        return self.id.name


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""
    expression: Expression


@dataclass
class ReturnStatement(Statement):
    """A return statement inside a function body."""
    argument: Expression


BodyItem = Union[VariableDeclaration, ExpressionStatement, ReturnStatement]


@dataclass
class Program(AstNode):
    """A complete script: statements in source order."""
    body: List[Statement] = field(default_factory=list)

    def ends_with_expr(self) -> bool:
        """Is the last body item an expression statement?"""
        return bool(self.body) and isinstance(self.body[-1], ExpressionStatement)

    def get_body_item_for_position(self, pos: int) -> Optional[Statement]:
        """The top-level statement whose range includes `pos`."""
        for item in self.body:
            if item.source_range.contains(pos):
                return item
        return None

    def get_expr_for_position(self, pos: int) -> Optional[Expression]:
        """The innermost expression whose range includes `pos`."""
        item = self.get_body_item_for_position(pos)
        if item is None:
            return None
        found = None
        for node in walk(item):
            if isinstance(node, Expression) and node.source_range.contains(pos):
                found = node
        return found

    def get_variable(self, name: str) -> Optional[VariableDeclaration]:
        """The top-level declaration of `name`, if any."""
        for item in self.body:
            if isinstance(item, VariableDeclaration) and item.name == name:
                return item
        return None


# =============================================================================
# Tree helpers
# =============================================================================

def children(node: AstNode) -> List[AstNode]:
    """Child nodes of `node`, in path index order."""
    if isinstance(node, Program):
        return list(node.body)
    if isinstance(node, FunctionExpression):
        return list(node.params) + list(node.body)
    if isinstance(node, VariableDeclaration):
        return [node.id, node.init]
    if isinstance(node, ExpressionStatement):
        return [node.expression]
    if isinstance(node, ReturnStatement):
        return [node.argument]
    if isinstance(node, BinaryExpression):
        return [node.left, node.right]
    if isinstance(node, UnaryExpression):
        return [node.argument]
    if isinstance(node, CallExpression):
        return [node.callee] + list(node.arguments)
    if isinstance(node, ArrayExpression):
        return list(node.elements)
    if isinstance(node, ObjectExpression):
        return list(node.properties)
    if isinstance(node, ObjectProperty):
        return [node.key, node.value]
    if isinstance(node, MemberExpression):
        return [node.object, node.property]
    if isinstance(node, PipeExpression):
        return list(node.body)
    return []


def walk(node: AstNode) -> Iterator[AstNode]:
    """Yield `node` and all its descendants depth-first, in source order."""
    yield node
    for child in children(node):
        yield from walk(child)


def assign_paths(node: AstNode, path: Path = ()) -> None:
    """Record on every node the child indices leading to it from `node`."""
    node.path = path
    for index, child in enumerate(children(node)):
        assign_paths(child, path + (index,))


def get_node_from_path(program: Program, path: Path) -> AstNode:
    """Re-locate a node from the Program root by its path."""
    node: AstNode = program
    for index in path:
        kids = children(node)
        if not 0 <= index < len(kids):
            raise KeyError(f"path {list(path)} does not exist in program")
        node = kids[index]
    return node


def find_too_deep(node: AstNode, limit: int) -> Optional[AstNode]:
    """The first node more than `limit` levels below `node`, if any."""
    stack = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if depth > limit:
            return current
        stack.extend((child, depth + 1) for child in reversed(children(current)))
    return None


def ast_equal(a: Any, b: Any) -> bool:
    """Structural equality that ignores spans and paths."""
    if isinstance(a, AstNode) or isinstance(b, AstNode):
        if type(a) is not type(b):
            return False
        for f in fields(a):
            if f.name in ("span", "path"):
                continue
            if not ast_equal(getattr(a, f.name), getattr(b, f.name)):
                return False
        return True
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(ast_equal(x, y) for x, y in zip(a, b))
    return a == b


# =============================================================================
# Debug printing
# =============================================================================

class AstPrinter:
    """Renders the AST structure as indented text."""

    def __init__(self, indent: int = 0, out: Optional[List[str]] = None):
        self.indent = indent
        self.out = out if out is not None else []

    def _print(self, text: str) -> None:
        self.out.append("  " * self.indent + text)

    def render(self, node: AstNode) -> List[str]:
        start, end = node.source_range
        self._print(f"{node.__class__.__name__} [{start}, {end}] path={list(node.path)}")
        for f in fields(node):
            if f.name in ("span", "path"):
                continue
            value = getattr(node, f.name)
            if isinstance(value, AstNode):
                self._print(f"  {f.name}:")
                AstPrinter(self.indent + 2, self.out).render(value)
            elif isinstance(value, list):
                self._print(f"  {f.name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        AstPrinter(self.indent + 2, self.out).render(item)
                    else:
                        self._print(f"    {item!r}")
                self._print("  ]")
            else:
                self._print(f"  {f.name}: {value!r}")
        return self.out


def format_ast(node: AstNode) -> str:
    """Render an AST node for debugging."""
    return "\n".join(AstPrinter().render(node))


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
