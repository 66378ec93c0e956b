"""
Tests for printing ASTs back to source.
"""

import pytest
from cadlang import parse_source, ast_equal, recast, FormatOptions
from cadlang.ast import Literal, Identifier, BinaryExpression
from cadlang.tokens import NO_SPAN


SOURCES = [
    "const a = 3\nconst b = a + 4\nshow(b)",
    "const a = (1 + 2) * 3 - -4 % 2",
    "const s = close(lineTo([4, 0], startSketchAt([0, 0]), \"base\"))",
    "fn add = (a, b) => {\n  const c = a + b\n  return c\n}\nadd(1, 2.5)",
    "const flag = !true\nconst t = 'single'",
    "const e = []\nconst f = () => {}",
]


class TestRoundTrip:
    """Recast output re-parses to the same tree."""

    @pytest.mark.parametrize("source", SOURCES)
    def test_round_trip(self, source):
        program = parse_source(source)
        assert ast_equal(parse_source(recast(program)), program)

    @pytest.mark.parametrize("source", SOURCES)
    def test_stable(self, source):
        once = recast(parse_source(source))
        assert recast(parse_source(once)) == once


class TestParentheses:
    """Parentheses appear only where precedence needs them."""

    @pytest.mark.parametrize("source, expected", [
        ("(a + b) * c", "(a + b) * c"),
        ("a + (b * c)", "a + b * c"),
        ("a - (b - c)", "a - (b - c)"),
        ("(a - b) - c", "a - b - c"),
        ("-(a + b)", "-(a + b)"),
        ("--a", "--a"),
        ("(f(x))", "f(x)"),
        ("a / (b % c)", "a / (b % c)"),
    ])
    def test_minimal_parentheses(self, source, expected):
        assert recast(parse_source(source).body[0].expression) == expected

    def test_negative_literal_operand(self):
        node = BinaryExpression(
            span=NO_SPAN, operator="-",
            left=Identifier(span=NO_SPAN, name="a"),
            right=Literal(span=NO_SPAN, value=-5),
        )
        assert recast(node) == "a - -5"


class TestLayout:
    """Indentation and newlines."""

    FUNC = "fn f = (a) => {\nreturn a\n}"

    def test_default_indent(self):
        assert recast(parse_source(self.FUNC)) == "fn f = (a) => {\n  return a\n}\n"

    def test_tab_size(self):
        text = recast(parse_source(self.FUNC), FormatOptions(tab_size=4))
        assert "\n    return a\n" in text

    def test_tabs(self):
        text = recast(parse_source(self.FUNC), FormatOptions(use_tabs=True))
        assert "\n\treturn a\n" in text

    def test_no_final_newline(self):
        text = recast(parse_source("const a = 1"), FormatOptions(insert_final_newline=False))
        assert text == "const a = 1"

    def test_empty_program(self):
        assert recast(parse_source("")) == ""


class TestLiterals:

    def test_raw_text_kept(self):
        assert recast(parse_source('show("a\\nb", 1.50)')) == 'show("a\\nb", 1.50)\n'

    def test_literal_without_raw(self):
        assert recast(Literal(span=NO_SPAN, value='x"y')) == '"x\\"y"'
        assert recast(Literal(span=NO_SPAN, value=False)) == "false"
        assert recast(Literal(span=NO_SPAN, value=2)) == "2"

    def test_escapes_without_raw(self):
        text = recast(Literal(span=NO_SPAN, value="a\nb\t\\"))
        assert text == '"a\\nb\\t\\\\"'
        assert parse_source(f"show({text})").body[0].expression.arguments[0].value == "a\nb\t\\"

    def test_non_finite_without_raw(self):
        with pytest.raises(ValueError):
            recast(Literal(span=NO_SPAN, value=float("inf")))


class TestNewSyntax:
    """Objects, member access and pipes."""

    SOURCES = [
        "const o = {x: 1, y: [2, 3]}\nconst e = {}",
        "const v = o.y[0] + o.x",
        "const w = t.position[i + 1]",
        "const s = startSketchAt([0, 0])\n  |> lineTo([1, 0], %)\n  |> close(%)",
        "const n = 7 |> f(% % 2, (1 |> g(%)))",
        "fn h = (p) => {\n  const q = p\n    |> f(%)\n  return q.a\n}",
    ]

    @pytest.mark.parametrize("source", SOURCES)
    def test_round_trip(self, source):
        program = parse_source(source)
        once = recast(program)
        assert ast_equal(parse_source(once), program)
        assert recast(parse_source(once)) == once

    def test_pipe_layout(self):
        text = recast(parse_source("const s = a |> f(%) |> g(%, 1)"))
        assert text == "const s = a\n  |> f(%)\n  |> g(%, 1)\n"

    def test_pipe_in_function_body(self):
        text = recast(parse_source("fn h = (p) => {\n  return p |> f(%)\n}"))
        assert text == "fn h = (p) => {\n  return p\n    |> f(%)\n}\n"

    @pytest.mark.parametrize("source, expected", [
        ("(a |> f(%)) + 1", "(a\n  |> f(%)) + 1"),
        ("(a |> f(%)).x", "(a\n  |> f(%)).x"),
        ("(-a).x", "(-a).x"),
        ("(a + b)[0]", "(a + b)[0]"),
        ("f(x).y", "f(x).y"),
    ])
    def test_member_and_pipe_parentheses(self, source, expected):
        assert recast(parse_source(source).body[0].expression) == expected

    def test_member_of_number(self):
        text = recast(parse_source("(1).x").body[0].expression)
        assert text == "(1).x"
        assert isinstance(parse_source(text).body[0].expression.object, Literal)
