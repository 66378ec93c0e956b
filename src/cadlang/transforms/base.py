"""
AST transformation framework for cadlang.

Transforms take a Program and return a new Program; the input tree is never
modified. Paths are re-assigned on every result so `get_node_from_path`
keeps working on transformed trees. Used for:
- Sign normalisation of value expressions
- Replacing the expression at a source range
- Renaming identifiers
"""

from abc import ABC, abstractmethod
from typing import List

from ..ast import (
    Program, Statement, VariableDeclaration, ExpressionStatement, ReturnStatement,
    Expression, Literal, Identifier, BinaryExpression, UnaryExpression,
    CallExpression, ArrayExpression, ObjectExpression, ObjectProperty,
    MemberExpression, PipeExpression, PipeSubstitution, FunctionExpression,
    assign_paths,
)


class AstTransform(ABC):
    """
    Base class for AST transformations.

    Transforms are applied to a Program and return a new Program.
    Transforms can be composed in a pipeline.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this transform for debugging/logging."""
        pass

    @abstractmethod
    def transform(self, program: Program) -> Program:
        """
        Apply this transform to a program.

        Args:
            program: The input program AST (left untouched)

        Returns:
            The transformed program
        """
        pass


class TreeTransform(AstTransform):
    """
    A transform that rebuilds the tree and can replace nodes.

    Subclasses override visit_* methods to transform specific node types.
    By default every node is copied unchanged, so the result shares no
    nodes with the input.
    """

    def transform(self, program: Program) -> Program:
        """Transform a program by visiting all nodes."""
        result = self.visit_program(program)
        assign_paths(result)
        return result

    def visit_program(self, node: Program) -> Program:
        return Program(span=node.span, body=self.visit_body(node.body))

    def visit_body(self, body: List[Statement]) -> List[Statement]:
        return [self.visit_statement(stmt) for stmt in body]

    def visit_statement(self, node: Statement) -> Statement:
        """Visit a statement node."""
        if isinstance(node, VariableDeclaration):
            return self.visit_variable_declaration(node)
        elif isinstance(node, ExpressionStatement):
            return self.visit_expr_statement(node)
        elif isinstance(node, ReturnStatement):
            return self.visit_return(node)
        else:
            raise TypeError(f"unknown statement type {type(node).__name__}")

    def visit_variable_declaration(self, node: VariableDeclaration) -> Statement:
        return VariableDeclaration(
            span=node.span,
            kind=node.kind,
            id=self.visit_declared_name(node.id),
            init=self.visit_expression(node.init),
        )

    def visit_declared_name(self, node: Identifier) -> Identifier:
        """Visit the name introduced by a declaration or parameter list."""
        return Identifier(span=node.span, name=node.name)

    def visit_expr_statement(self, node: ExpressionStatement) -> Statement:
        return ExpressionStatement(span=node.span, expression=self.visit_expression(node.expression))

    def visit_return(self, node: ReturnStatement) -> Statement:
        return ReturnStatement(span=node.span, argument=self.visit_expression(node.argument))

    def visit_expression(self, node: Expression) -> Expression:
        """Visit an expression node."""
        if isinstance(node, Literal):
            return self.visit_literal(node)
        elif isinstance(node, Identifier):
            return self.visit_identifier(node)
        elif isinstance(node, BinaryExpression):
            return self.visit_binary(node)
        elif isinstance(node, UnaryExpression):
            return self.visit_unary(node)
        elif isinstance(node, CallExpression):
            return self.visit_call(node)
        elif isinstance(node, ArrayExpression):
            return self.visit_array(node)
        elif isinstance(node, ObjectExpression):
            return self.visit_object(node)
        elif isinstance(node, MemberExpression):
            return self.visit_member(node)
        elif isinstance(node, PipeExpression):
            return self.visit_pipe(node)
        elif isinstance(node, PipeSubstitution):
            return self.visit_pipe_substitution(node)
        elif isinstance(node, FunctionExpression):
            return self.visit_function(node)
        else:
            raise TypeError(f"unknown expression type {type(node).__name__}")

    def visit_literal(self, node: Literal) -> Expression:
        return Literal(span=node.span, value=node.value, raw=node.raw)

    def visit_identifier(self, node: Identifier) -> Expression:
        return Identifier(span=node.span, name=node.name)

    def visit_binary(self, node: BinaryExpression) -> Expression:
        return BinaryExpression(
            span=node.span,
            operator=node.operator,
            left=self.visit_expression(node.left),
            right=self.visit_expression(node.right),
        )

    def visit_unary(self, node: UnaryExpression) -> Expression:
        return UnaryExpression(
            span=node.span,
            operator=node.operator,
            argument=self.visit_expression(node.argument),
        )

    def visit_call(self, node: CallExpression) -> Expression:
        return CallExpression(
            span=node.span,
            callee=self.visit_callee(node.callee),
            arguments=[self.visit_expression(arg) for arg in node.arguments],
        )

    def visit_callee(self, node: Identifier) -> Identifier:
        return Identifier(span=node.span, name=node.name)

    def visit_array(self, node: ArrayExpression) -> Expression:
        return ArrayExpression(
            span=node.span,
            elements=[self.visit_expression(elem) for elem in node.elements],
        )

    def visit_object(self, node: ObjectExpression) -> Expression:
        return ObjectExpression(
            span=node.span,
            properties=[
                ObjectProperty(
                    span=prop.span,
                    key=self.visit_property_name(prop.key),
                    value=self.visit_expression(prop.value),
                )
                for prop in node.properties
            ],
        )

    def visit_member(self, node: MemberExpression) -> Expression:
        if node.computed:
            prop = self.visit_expression(node.property)
        else:
            prop = self.visit_property_name(node.property)
        return MemberExpression(
            span=node.span,
            object=self.visit_expression(node.object),
            property=prop,
            computed=node.computed,
        )

    def visit_property_name(self, node: Identifier) -> Identifier:
        """Visit an object key or `.name`; these are labels, not references."""
        return Identifier(span=node.span, name=node.name)

    def visit_pipe(self, node: PipeExpression) -> Expression:
        return PipeExpression(
            span=node.span,
            body=[self.visit_expression(stage) for stage in node.body],
        )

    def visit_pipe_substitution(self, node: PipeSubstitution) -> Expression:
        return PipeSubstitution(span=node.span)

    def visit_function(self, node: FunctionExpression) -> Expression:
        return FunctionExpression(
            span=node.span,
            params=[self.visit_declared_name(param) for param in node.params],
            body=self.visit_body(node.body),
        )


class TransformPipeline:
    """
    A pipeline of AST transforms to apply in sequence.
    """

    def __init__(self, transforms: List[AstTransform] = None):
        self.transforms = transforms or []

    def add(self, transform: AstTransform) -> "TransformPipeline":
        """Add a transform to the pipeline."""
        self.transforms.append(transform)
        return self

    def apply(self, program: Program) -> Program:
        """Apply all transforms in sequence."""
        result = program
        for transform in self.transforms:
            result = transform.transform(result)
        return result


class IdentityTransform(TreeTransform):
    """Copies the program unchanged."""

    @property
    def name(self) -> str:
        return "identity"
