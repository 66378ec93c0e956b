"""
Tests for sign normalisation of value expressions.
"""

import pytest
from cadlang import (
    parse_source, ast_equal, format_ast, get_node_from_path, ExecutorConfig,
    Literal, Identifier, UnaryExpression, BinaryExpression,
)
from cadlang.tokens import NO_SPAN
from cadlang.transforms import (
    NormalizeOptions, SignNormalizeTransform, normalize_sign, simplify_negation,
)


def ident(name):
    return Identifier(span=NO_SPAN, name=name)


def lit(value):
    return Literal(span=NO_SPAN, value=value, raw=str(value))


def neg(node):
    return UnaryExpression(span=NO_SPAN, operator="-", argument=node)


class TestNormalizeSign:
    """Applying a sign and simplifying the result."""

    def test_positive_sign_unchanged(self):
        assert ast_equal(normalize_sign(ident("x")), ident("x"))

    def test_negative_sign_wraps(self):
        assert ast_equal(normalize_sign(ident("x"), -1), neg(ident("x")))

    def test_negating_negation_collapses(self):
        assert ast_equal(normalize_sign(neg(ident("x")), -1), ident("x"))

    def test_existing_double_negation_collapses(self):
        assert ast_equal(normalize_sign(neg(neg(ident("x")))), ident("x"))

    def test_quadruple_negation_collapses(self):
        assert ast_equal(normalize_sign(neg(neg(neg(neg(lit(5)))))), lit(5))

    def test_negative_literal_folds(self):
        result = normalize_sign(lit(-5), -1)
        assert isinstance(result, Literal)
        assert result.value == 5
        assert result.raw == "5"

    def test_negative_float_literal_folds(self):
        result = normalize_sign(lit(-2.5), -1)
        assert result.value == 2.5

    def test_variable_substitution(self):
        result = normalize_sign(lit(3), -1, variable_name="len")
        assert ast_equal(result, neg(ident("len")))

    def test_variable_substitution_positive(self):
        assert ast_equal(normalize_sign(lit(3), 1, variable_name="len"), ident("len"))

    def test_idempotent(self):
        samples = [
            ident("x"), neg(ident("x")), neg(neg(ident("x"))), lit(-5), neg(lit(-5)),
            BinaryExpression(span=NO_SPAN, operator="-", left=ident("a"), right=lit(2)),
        ]
        for node in samples:
            once = normalize_sign(node)
            assert ast_equal(normalize_sign(once), once)

    def test_input_not_mutated(self):
        expr = parse_source("--(-5)").body[0].expression
        before = format_ast(expr)
        normalize_sign(expr, -1)
        assert format_ast(expr) == before

    def test_invalid_sign(self):
        with pytest.raises(ValueError):
            normalize_sign(ident("x"), 0)


class TestNormalizeOptions:
    """Each simplification can be switched off."""

    def test_no_collapse(self):
        options = NormalizeOptions(collapse_double_negation=False)
        result = normalize_sign(neg(ident("x")), -1, options=options)
        assert ast_equal(result, neg(neg(ident("x"))))

    def test_no_fold(self):
        options = NormalizeOptions(fold_negative_literals=False)
        result = normalize_sign(lit(-5), -1, options=options)
        assert ast_equal(result, neg(lit(-5)))

    def test_options_apply_to_substitution(self):
        options = NormalizeOptions(collapse_double_negation=False)
        result = normalize_sign(lit(1), -1, variable_name="x", options=options)
        assert ast_equal(result, neg(ident("x")))

    def test_from_config(self):
        config = ExecutorConfig(fold_negative_literals=False)
        options = NormalizeOptions.from_config(config)
        assert options.collapse_double_negation is True
        assert options.fold_negative_literals is False

    def test_simplify_only_touches_root(self):
        node = BinaryExpression(span=NO_SPAN, operator="+", left=neg(neg(ident("a"))), right=lit(1))
        assert simplify_negation(node) is node


class TestSignNormalizeTransform:
    """The program-wide variant of the same rules."""

    def test_program_rewrite(self):
        program = parse_source("const a = --b\nconst c = -(-(5))\nconst d = -(-3)")
        result = SignNormalizeTransform().transform(program)
        assert ast_equal(result.body[0].init, ident("b"))
        assert isinstance(result.body[1].init, Literal)
        assert result.body[1].init.value == 5
        assert result.body[2].init.value == 3

    def test_nested_negations(self):
        program = parse_source("show(1 + --x)")
        result = SignNormalizeTransform().transform(program)
        call = result.body[0].expression
        assert ast_equal(call.arguments[0].right, ident("x"))

    def test_original_untouched(self):
        program = parse_source("const a = --b")
        SignNormalizeTransform().transform(program)
        assert isinstance(program.body[0].init, UnaryExpression)

    def test_paths_reassigned(self):
        program = parse_source("const a = 1\nconst b = --a")
        result = SignNormalizeTransform().transform(program)
        node = result.body[1].init
        assert node.path == (1, 1)
        assert get_node_from_path(result, (1, 1)) is node

    def test_name(self):
        assert SignNormalizeTransform().name == "sign-normalize"
