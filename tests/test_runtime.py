"""
Tests for the cadlang executor.
"""

import math
import pytest
from cadlang import (
    parse_source, Executor, ExecutorConfig, ProgramMemory,
    RecordingCommandManager, compile_and_run,
    DuplicateBinding, UndefinedVariable, UnknownFunction, TypeMismatch,
    ResourceExhausted, ParseError, SourceRange,
    Program, ExpressionStatement, UnaryExpression, Literal,
)
from cadlang.tokens import NO_SPAN
from cadlang.runtime import (
    Metadata, ValueKind, SketchGroup, number_val, sketch_group_val, user_val,
)


SQUARE = """const sketch = startSketchAt([0, 0])
const s1 = lineTo([4, 0], sketch)
const s2 = lineTo([4, 4], s1)
const s3 = lineTo([0, 4], s2)
const part = extrude(5, close(s3))
"""


def run(code, memory=None, manager=None, config=None):
    executor = Executor(manager, config)
    return executor.execute(parse_source(code), memory, code)


def value_of(code):
    return run(code).last_value


class TestEndToEnd:
    """Small programs exercising the whole pipeline."""

    def test_arithmetic_and_show(self):
        code = "const a = 3\nconst b = a + 4\nshow(b)"
        result = run(code)
        assert result.get("a").data == 3
        assert result.get("b").data == 7
        assert [v.data for v in result.shown] == [7]
        assert result.last_value.data == 7

    def test_extrude_previously_bound_sketch(self):
        """One extrude command targeting the bound sketch, metadata merged."""
        sketch_meta = Metadata(SourceRange(0, 21), (0, 0))
        sketch = SketchGroup(id="sketch-1", start=(0.0, 0.0))
        memory = ProgramMemory()
        memory.define("mySketch", sketch_group_val(sketch, [sketch_meta]))
        manager = RecordingCommandManager()

        code = "extrude(5, mySketch)"
        result = run(code, memory, manager)

        assert len(manager.commands) == 1
        command = manager.commands[0]
        assert command.type == "extrude"
        assert command.cmd.distance == 5
        assert command.cmd.target == "sketch-1"
        assert command.cmd.cap is True
        assert command.range == (0, len(code))

        value = result.last_value
        assert value.kind == ValueKind.EXTRUDE_GROUP
        assert value.data.sketch_id == "sketch-1"
        assert value.meta[0].source_range == (0, len(code))
        assert sketch_meta in value.meta

    def test_extrude_sketch_from_earlier_pass(self):
        memory = ProgramMemory()
        manager = RecordingCommandManager()
        run("const mySketch = close(lineTo([0, 4], lineTo([4, 0], startSketchAt([0, 0]))))",
            memory, manager)
        sketch = memory.lookup("mySketch")
        manager.clear()

        result = run("extrude(5, mySketch)", memory, manager)
        assert [c.type for c in result.commands] == ["extrude"]
        assert result.commands[0].cmd.target == sketch.data.id
        for entry in sketch.meta:
            assert entry in result.last_value.meta

    def test_duplicate_declaration(self):
        """Execution stops at the second declaration, reporting its range."""
        code = "const a = 1\nconst a = 2\nstartSketchAt([0, 0])"
        manager = RecordingCommandManager()
        with pytest.raises(DuplicateBinding) as exc_info:
            run(code, manager=manager)
        assert exc_info.value.source_range == SourceRange(12, 23)
        assert exc_info.value.source_range.slice(code) == "const a = 2"
        assert len(manager) == 0

    def test_undefined_variable(self):
        code = "show(unknown)"
        with pytest.raises(UndefinedVariable) as exc_info:
            run(code)
        assert exc_info.value.source_range == (5, 12)
        assert exc_info.value.code == "E302"

    def test_error_carries_source_line(self):
        code = "const a = 1\nshow(unknown)"
        with pytest.raises(UndefinedVariable) as exc_info:
            run(code)
        assert "show(unknown)" in str(exc_info.value)


class TestDeterminism:
    """Re-running unchanged code reproduces the same engine ids."""

    def test_same_code_same_ids(self):
        first = RecordingCommandManager()
        second = RecordingCommandManager()
        run(SQUARE, manager=first)
        run(SQUARE, manager=second)
        assert first.ids() == second.ids()
        assert len(first) == 6

    def test_ids_unique_within_pass(self):
        manager = RecordingCommandManager()
        run(SQUARE, manager=manager)
        assert len(set(manager.ids())) == len(manager)

    def test_changed_code_changes_ids(self):
        first = RecordingCommandManager()
        second = RecordingCommandManager()
        run(SQUARE, manager=first)
        run(SQUARE.replace("extrude(5", "extrude(6"), manager=second)
        assert first.ids() != second.ids()

    def test_commands_in_program_order(self):
        result = run(SQUARE, manager=RecordingCommandManager())
        assert [c.type for c in result.commands] == [
            "start_path", "extend_path", "extend_path", "extend_path",
            "close_path", "extrude",
        ]

    def test_result_holds_only_this_pass(self):
        manager = RecordingCommandManager()
        executor = Executor(manager)
        program = parse_source(SQUARE)
        executor.execute(program, code=SQUARE)
        result = executor.execute(program, code=SQUARE)
        assert len(result.commands) == 6
        assert len(manager) == 12

    def test_every_value_has_metadata(self):
        result = run(SQUARE)
        for name, value in result.memory.local_items():
            assert len(value.meta) >= 1, name


class TestOperators:
    """Arithmetic, string and logical operators."""

    def test_division(self):
        assert value_of("10 / 4").data == 2.5

    def test_modulo(self):
        assert value_of("7 % 3").data == 1

    def test_modulo_sign_follows_dividend(self):
        assert value_of("-7 % 3").data == -1

    def test_precedence(self):
        assert value_of("2 + 3 * 4").data == 14
        assert value_of("(2 + 3) * 4").data == 20

    def test_string_concatenation(self):
        value = value_of('"ab" + "cd"')
        assert value.kind == ValueKind.STRING
        assert value.data == "abcd"

    def test_double_negation(self):
        assert value_of("--3").data == 3

    def test_not(self):
        assert value_of("!true").data is False

    def test_division_by_zero(self):
        with pytest.raises(TypeMismatch):
            run("1 / 0")

    def test_modulo_by_zero(self):
        with pytest.raises(TypeMismatch):
            run("1 % 0")

    def test_mixed_operands(self):
        with pytest.raises(TypeMismatch):
            run('"a" + 1')

    def test_negate_boolean(self):
        with pytest.raises(TypeMismatch):
            run("-true")

    def test_not_number(self):
        with pytest.raises(TypeMismatch):
            run("!1")

    def test_seeded_user_value(self):
        memory = ProgramMemory()
        memory.define("h", number_val(4))
        result = run("const v = h * 2", memory)
        assert result.get("v").data == 8

    def test_array_literal(self):
        value = value_of("[1, 2 + 1]")
        assert value.kind == ValueKind.ARRAY
        assert value.to_python() == [1, 3]


    def test_exact_integer_remainder(self):
        """Integers beyond 2**53 keep every digit through %."""
        assert value_of("9007199254740993 % 2").data == 1
        assert value_of("-9007199254740993 % 2").data == -1

    def test_fractional_remainder(self):
        assert value_of("7.5 % 2").data == pytest.approx(1.5)

    def test_large_literal_arithmetic(self):
        value = value_of("1" * 300 + " / 3")
        assert math.isfinite(value.data)

    def test_multiplication_overflow(self):
        with pytest.raises(TypeMismatch) as exc_info:
            run("1e308 * 10")
        assert "out of range" in exc_info.value.diagnostic.message

    def test_integer_product_overflow(self):
        big = "9" * 300
        with pytest.raises(TypeMismatch):
            run(f"{big} * {big}")

    def test_division_overflow(self):
        with pytest.raises(TypeMismatch):
            run("1e308 / 0.1")

    def test_non_finite_seeded_value(self):
        memory = ProgramMemory()
        memory.define("h", number_val(math.inf))
        with pytest.raises(TypeMismatch):
            run("const v = -h", memory)
        with pytest.raises(TypeMismatch):
            run("const v = h - h", memory)


class TestCalls:
    """Function resolution and user functions."""

    def test_unknown_function(self):
        with pytest.raises(UnknownFunction) as exc_info:
            run("foo(1)")
        assert exc_info.value.source_range == (0, 3)

    def test_builtin_arity(self):
        with pytest.raises(TypeMismatch):
            run("sin(1, 2)")

    def test_user_function(self):
        code = "fn add = (a, b) => {\n  return a + b\n}\nconst c = add(2, 3)"
        assert run(code).get("c").data == 5

    def test_closure_sees_outer_binding(self):
        code = "const k = 10\nfn addK = (x) => {\n  return x + k\n}\naddK(1)"
        assert value_of(code).data == 11

    def test_parameters_do_not_leak(self):
        code = "fn f = (x) => {\n  return x\n}\nf(1)"
        result = run(code)
        assert not result.memory.contains("x")

    def test_function_body_may_shadow(self):
        code = "const a = 1\nfn f = (x) => {\n  const a = 2\n  return a + x\n}\nf(1)"
        result = run(code)
        assert result.last_value.data == 3
        assert result.get("a").data == 1

    def test_trailing_expression_is_result(self):
        code = "fn double = (x) => {\n  x * 2\n}\ndouble(4)"
        assert value_of(code).data == 8

    def test_function_without_value(self):
        code = "fn f = (x) => {\n  const y = x\n}\nf(1)"
        with pytest.raises(TypeMismatch):
            run(code)

    def test_user_function_arity(self):
        code = "fn add = (a, b) => {\n  return a + b\n}\nadd(1)"
        with pytest.raises(TypeMismatch):
            run(code)

    def test_user_function_shadows_library(self):
        code = "fn sin = (x) => {\n  return x\n}\nsin(5)"
        assert value_of(code).data == 5

    def test_call_metadata_first(self):
        code = "fn f = (x) => {\n  return x\n}\nf(1)"
        value = value_of(code)
        call_range = SourceRange(code.index("f(1)"), len(code))
        assert value.meta[0].source_range == call_range


class TestLimits:
    """Step and call-depth budgets."""

    def test_recursion_limit(self):
        code = "fn f = (x) => {\n  return f(x)\n}\nf(1)"
        with pytest.raises(ResourceExhausted):
            run(code)

    def test_call_depth_config(self):
        code = "fn f = (x) => {\n  return x\n}\nfn g = (x) => {\n  return f(x)\n}\ng(1)"
        assert run(code, config=ExecutorConfig(max_call_depth=2)).last_value.data == 1
        with pytest.raises(ResourceExhausted):
            run(code, config=ExecutorConfig(max_call_depth=1))

    def test_step_limit(self):
        with pytest.raises(ResourceExhausted) as exc_info:
            run("1 + 2 + 3 + 4", config=ExecutorConfig(max_steps=5))
        assert exc_info.value.code == "E305"

    def test_long_sum_reported(self):
        outcome = compile_and_run("const s = " + " + ".join(["1"] * 600))
        assert not outcome.success
        assert isinstance(outcome.error, ParseError)
        assert outcome.error.code == "E105"

    def test_deep_parentheses_reported(self):
        outcome = compile_and_run("const s = " + "(" * 250 + "1" + ")" * 250)
        assert not outcome.success
        assert outcome.error.code == "E105"

    def test_deep_tree_built_by_hand(self):
        """Trees that never went through the parser still fail cleanly."""
        node = Literal(span=NO_SPAN, value=1, raw="1")
        for _ in range(5000):
            node = UnaryExpression(span=NO_SPAN, operator="-", argument=node)
        program = Program(span=NO_SPAN, body=[ExpressionStatement(span=NO_SPAN, expression=node)])
        with pytest.raises(ResourceExhausted) as exc_info:
            Executor().execute(program)
        assert "nested too deeply" in exc_info.value.diagnostic.message


class TestCompileAndRun:
    """The high-level wrapper reports errors instead of raising."""

    def test_success(self):
        outcome = compile_and_run("const a = 2 * 21")
        assert outcome.success
        assert outcome.result.get("a").data == 42
        assert outcome.error_message is None

    def test_parse_failure(self):
        outcome = compile_and_run("const = 3")
        assert not outcome.success
        assert isinstance(outcome.error, ParseError)
        assert "E101" in outcome.error_message

    def test_runtime_failure(self):
        outcome = compile_and_run("sqrt(-1)")
        assert not outcome.success
        assert isinstance(outcome.error, TypeMismatch)

    def test_engine_commands_reach_manager(self):
        manager = RecordingCommandManager()
        outcome = compile_and_run(SQUARE, command_manager=manager)
        assert outcome.success
        assert len(manager) == 6
        part = outcome.result.get("part")
        assert math.isclose(part.data.height, 5)


class TestMembers:
    """Property and index access on arrays and objects."""

    def test_array_index(self):
        assert value_of("const a = [10, 20, 30]\na[1]").data == 20

    def test_index_expression(self):
        assert value_of("const a = [10, 20, 30]\nconst i = 1\na[i + 1]").data == 30

    def test_index_out_of_range(self):
        with pytest.raises(UndefinedVariable) as exc_info:
            run("const a = [1]\na[3]")
        assert exc_info.value.code == "E306"

    def test_fractional_index(self):
        with pytest.raises(TypeMismatch):
            run("const a = [1, 2]\na[0.5]")

    def test_object_literal(self):
        value = value_of("const k = 2\n{x: 1, y: k * 3}")
        assert value.kind == ValueKind.USER_VAL
        assert value.to_python() == {"x": 1, "y": 6}

    def test_object_property(self):
        assert value_of("const o = {size: [4, 5]}\no.size[1]").data == 5

    def test_string_key(self):
        assert value_of('const o = {size: 4}\no["size"]').data == 4

    def test_missing_property(self):
        code = "const o = {x: 1}\no.y"
        with pytest.raises(UndefinedVariable) as exc_info:
            run(code)
        assert exc_info.value.code == "E306"
        assert exc_info.value.source_range == (code.index("y"), code.index("y") + 1)

    def test_member_of_number(self):
        with pytest.raises(TypeMismatch):
            run("const n = 3\nn.x")

    def test_seeded_user_value(self):
        memory = ProgramMemory()
        memory.define("cfg", user_val({"depth": 7}))
        assert run("const d = cfg.depth * 2", memory).get("d").data == 14


class TestPipes:
    """Pipe expressions thread each result into the next call."""

    PIPED = """const part = startSketchAt([0, 0])
  |> lineTo([4, 0], %)
  |> lineTo([4, 4], %)
  |> lineTo([0, 4], %)
  |> close(%)
  |> extrude(5, %)
"""

    def test_same_commands_as_nested_calls(self):
        piped_manager = RecordingCommandManager()
        nested_manager = RecordingCommandManager()
        piped = run(self.PIPED, manager=piped_manager)
        nested = run(SQUARE, manager=nested_manager)
        assert [c.type for c in piped_manager.commands] == [c.type for c in nested_manager.commands]
        assert math.isclose(piped.get("part").data.height, nested.get("part").data.height)

    def test_numeric_pipe(self):
        code = "fn double = (x) => {\n  return x * 2\n}\nconst v = 3 |> double(%) |> sqrt(% + 3)"
        assert run(code).get("v").data == pytest.approx(3.0)

    def test_substitution_used_twice(self):
        assert value_of("fn add = (a, b) => {\n  return a + b\n}\n4 |> add(%, %)").data == 8

    def test_nested_pipe_has_own_substitution(self):
        code = "fn add = (a, b) => {\n  return a + b\n}\n1 |> add(%, (10 |> add(%, 5)))"
        assert value_of(code).data == 16

    def test_pipe_value_released(self):
        """A failed stage does not leave its value behind for the next pass."""
        executor = Executor()
        with pytest.raises(UnknownFunction):
            executor.execute(parse_source("1 |> nope(%)"))
        assert executor.execute(parse_source("2 |> sqrt(%)")).last_value.data == pytest.approx(2 ** 0.5)
