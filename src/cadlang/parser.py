"""
Recursive descent parser for cadlang.

Converts a token stream into an Abstract Syntax Tree (AST). Every node's
span covers exactly the tokens it was built from; once the tree is complete
each node is stamped with its path from the Program root.
"""

import dataclasses
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional
from .lexer import tokenize
from .tokens import Token, TokenType, SourceSpan, span_between, OPERATORS, DECLARATION_KEYWORDS
from .ast import (
    Program, Statement, VariableDeclaration, ExpressionStatement, ReturnStatement,
    Expression, Literal, Identifier, BinaryExpression, UnaryExpression,
    CallExpression, ArrayExpression, ObjectExpression, ObjectProperty,
    MemberExpression, PipeExpression, PipeSubstitution, FunctionExpression,
    assign_paths, find_too_deep,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_return_outside_function,
    error_invalid_callee,
    error_invalid_pipe,
    error_nesting_too_deep,
)

logger = logging.getLogger(__name__)


class Parser:
    """
    Recursive descent parser for cadlang.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    Expression precedence, lowest to highest:
        |>         (pipe; every stage after the first is a call)
        + -        (left-associative)
        * / %      (left-associative)
        unary - !
        calls, member access (a.b, a[i])

    A `(` or `[` continues the expression before it only on the same line;
    on a new line it starts the next statement.
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.PLUS: 1,
        TokenType.MINUS: 1,
        TokenType.STAR: 2,
        TokenType.SLASH: 2,
        TokenType.PERCENT: 2,
    }

    # Bracket, call and unary nesting; each level costs several Python frames
    MAX_NESTING = 64
    # Depth of the finished tree below the Program, which the executor,
    # recast and transforms walk recursively
    MAX_TREE_DEPTH = 200

    def __init__(self, tokens: List[Token], source: Optional[str] = None):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token stream must end with an EOF token")
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self._function_depth = 0
        self._pipe_stage_depth = 0
        self._nesting = 0
        self._lines = source.splitlines() if source else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        return self.tokens[min(self.pos, len(self.tokens) - 1)]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _advance(self) -> Token:
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        if self._current().type in token_types:
            return self._advance()
        return None

    def _on_same_line(self, token: Token) -> bool:
        """Does `token` start on the line where the previous token ended?"""
        return self._previous().span.end.line == token.span.start.line

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, f"'{token.lexeme}'", token.span,
            self._source_line(token.span.start.line),
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Span from the start token to the last consumed token."""
        end_token = self.tokens[max(0, self.pos - 1)]
        return SourceSpan(start.span.start, end_token.span.end)

    @contextmanager
    def _nested(self) -> Iterator[None]:
        """Track one level of recursive descent, failing past MAX_NESTING."""
        self._nesting += 1
        try:
            if self._nesting > self.MAX_NESTING:
                token = self._current()
                raise error_nesting_too_deep(
                    self.MAX_NESTING, token.span, self._source_line(token.span.start.line)
                )
            yield
        finally:
            self._nesting -= 1

    # =========================================================================
    # Statements
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse a whole script."""
        start = self._current()
        body = []
        while not self._is_at_end():
            body.append(self._parse_statement())

        if body:
            span = span_between(body[0].span, body[-1].span)
        else:
            span = SourceSpan(start.span.start, start.span.start)
        program = Program(span=span, body=body)

        too_deep = find_too_deep(program, self.MAX_TREE_DEPTH)
        if too_deep is not None:
            raise error_nesting_too_deep(
                self.MAX_TREE_DEPTH, too_deep.span,
                self._source_line(too_deep.span.start.line),
            )
        assign_paths(program)
        logger.debug("parsed %d top-level statements", len(body))
        return program

    def _parse_statement(self) -> Statement:
        token = self._current()
        if token.type in DECLARATION_KEYWORDS:
            return self._parse_variable_declaration()
        if token.type == TokenType.RETURN:
            return self._parse_return_statement()

        expr = self._parse_expression()
        return ExpressionStatement(span=expr.span, expression=expr)

    def _parse_variable_declaration(self) -> VariableDeclaration:
        start = self._advance()  # consume const / let / var / fn
        name_token = self._consume(TokenType.IDENTIFIER, "variable name")
        ident = Identifier(span=name_token.span, name=name_token.value)
        self._consume(TokenType.ASSIGN, "'='")
        init = self._parse_expression()
        return VariableDeclaration(
            span=self._span_from(start),
            kind=start.lexeme,
            id=ident,
            init=init,
        )

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._advance()  # consume 'return'
        if self._function_depth == 0:
            raise error_return_outside_function(
                start.span, self._source_line(start.span.start.line)
            )
        argument = self._parse_expression()
        return ReturnStatement(span=self._span_from(start), argument=argument)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self) -> Expression:
        with self._nested():
            return self._parse_pipe_expr()

    def _parse_pipe_expr(self) -> Expression:
        first = self._parse_binary_expr(1)
        if not self._check(TokenType.PIPE):
            return first

        body = [first]
        while self._match(TokenType.PIPE):
            self._pipe_stage_depth += 1
            try:
                stage = self._parse_binary_expr(1)
            finally:
                self._pipe_stage_depth -= 1
            if not isinstance(stage, CallExpression):
                raise error_invalid_pipe(
                    "every pipe stage after the first must be a function call",
                    stage.span, self._source_line(stage.span.start.line),
                )
            body.append(stage)
        return PipeExpression(span=span_between(first.span, body[-1].span), body=body)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Precedence climbing over the left-associative binary operators."""
        left = self._parse_unary_expr()

        while True:
            op_type = self._current().type
            precedence = self.PRECEDENCE.get(op_type)
            if precedence is None or precedence < min_precedence:
                break
            self._advance()
            right = self._parse_binary_expr(precedence + 1)
            left = BinaryExpression(
                span=span_between(left.span, right.span),
                operator=OPERATORS[op_type],
                left=left,
                right=right,
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        start = self._match(TokenType.MINUS, TokenType.BANG)
        if start:
            with self._nested():
                argument = self._parse_unary_expr()
            return UnaryExpression(
                span=SourceSpan(start.span.start, argument.span.end),
                operator=start.lexeme,
                argument=argument,
            )
        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Calls and member access chained onto a primary expression."""
        expr = self._parse_primary_expr()

        while True:
            token = self._current()
            if token.type == TokenType.DOT:
                self._advance()
                name = self._consume(TokenType.IDENTIFIER, "property name")
                expr = MemberExpression(
                    span=SourceSpan(expr.span.start, name.span.end),
                    object=expr,
                    property=Identifier(span=name.span, name=name.value),
                )
            elif token.type == TokenType.LBRACKET and self._on_same_line(token):
                self._advance()  # consume '['
                index = self._parse_expression()
                end = self._consume(TokenType.RBRACKET, "']'")
                expr = MemberExpression(
                    span=SourceSpan(expr.span.start, end.span.end),
                    object=expr,
                    property=index,
                    computed=True,
                )
            elif token.type == TokenType.LPAREN and self._on_same_line(token):
                if not isinstance(expr, Identifier):
                    raise error_invalid_callee(
                        token.span, self._source_line(token.span.start.line)
                    )
                self._advance()  # consume '('
                arguments = self._parse_comma_list(TokenType.RPAREN, "')'")
                end = self._consume(TokenType.RPAREN, "')'")
                expr = CallExpression(
                    span=SourceSpan(expr.span.start, end.span.end),
                    callee=expr,
                    arguments=arguments,
                )
            else:
                return expr

    def _parse_comma_list(self, closing: TokenType, expected: str) -> List[Expression]:
        """Expressions separated by commas up to (not including) `closing`."""
        items = []
        while not self._check(closing):
            items.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                if not self._check(closing):
                    self._error(f"',' or {expected}")
                break
        return items

    def _parse_primary_expr(self) -> Expression:
        token = self._current()

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return Literal(span=token.span, value=token.value, raw=token.lexeme)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.PERCENT:
            if self._pipe_stage_depth == 0:
                raise error_invalid_pipe(
                    "'%' can only be used inside a pipe stage",
                    token.span, self._source_line(token.span.start.line),
                )
            self._advance()
            return PipeSubstitution(span=token.span)

        if token.type == TokenType.LBRACKET:
            self._advance()
            elements = self._parse_comma_list(TokenType.RBRACKET, "']'")
            self._consume(TokenType.RBRACKET, "']'")
            return ArrayExpression(span=self._span_from(token), elements=elements)

        if token.type == TokenType.LBRACE:
            return self._parse_object_expression()

        if token.type == TokenType.LPAREN:
            if self._at_function_expression():
                return self._parse_function_expression()
            self._advance()
            inner = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            # Widen to the parentheses so the range covers every token used.
            return dataclasses.replace(inner, span=self._span_from(token))

        self._error("expression")

    def _parse_object_expression(self) -> ObjectExpression:
        start = self._consume(TokenType.LBRACE, "'{'")
        properties = []
        while not self._check(TokenType.RBRACE):
            key = self._consume(TokenType.IDENTIFIER, "property name")
            self._consume(TokenType.COLON, "':'")
            value = self._parse_expression()
            properties.append(ObjectProperty(
                span=SourceSpan(key.span.start, value.span.end),
                key=Identifier(span=key.span, name=key.value),
                value=value,
            ))
            if not self._match(TokenType.COMMA):
                if not self._check(TokenType.RBRACE):
                    self._error("',' or '}'")
                break
        self._consume(TokenType.RBRACE, "'}'")
        return ObjectExpression(span=self._span_from(start), properties=properties)

    def _at_function_expression(self) -> bool:
        """Look ahead for `( ident, ... ) =>` without consuming tokens."""
        offset = 1
        expect_ident = True
        while True:
            token_type = self._peek(offset).type
            if token_type == TokenType.RPAREN:
                return self._peek(offset + 1).type == TokenType.ARROW
            if expect_ident and token_type != TokenType.IDENTIFIER:
                return False
            if not expect_ident and token_type != TokenType.COMMA:
                return False
            expect_ident = not expect_ident
            offset += 1

    def _parse_function_expression(self) -> FunctionExpression:
        start = self._consume(TokenType.LPAREN, "'('")
        params = []
        while not self._check(TokenType.RPAREN):
            name = self._consume(TokenType.IDENTIFIER, "parameter name")
            params.append(Identifier(span=name.span, name=name.value))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "')'")
        self._consume(TokenType.ARROW, "'=>'")
        self._consume(TokenType.LBRACE, "'{'")

        # `%` of an enclosing pipe is not visible inside a function body
        outer_pipe_depth = self._pipe_stage_depth
        self._pipe_stage_depth = 0
        self._function_depth += 1
        try:
            body = []
            while not self._check(TokenType.RBRACE):
                if self._is_at_end():
                    self._error("'}'")
                with self._nested():
                    body.append(self._parse_statement())
        finally:
            self._function_depth -= 1
            self._pipe_stage_depth = outer_pipe_depth

        self._consume(TokenType.RBRACE, "'}'")
        return FunctionExpression(span=self._span_from(start), params=params, body=body)


def parse(tokens: List[Token], source: Optional[str] = None) -> Program:
    """
    Parse a token list into a Program.

    Raises:
        ParseError: On the first unexpected token
    """
    return Parser(tokens, source).parse_program()


def parse_source(source: str, filename: Optional[str] = None) -> Program:
    """Tokenize and parse source text in one step."""
    return parse(tokenize(source, filename), source=source)
