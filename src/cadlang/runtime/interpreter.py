"""
Tree-walking executor for cadlang programs.

Statements run strictly in program order against a ProgramMemory; the first
error aborts the pass. Library calls receive a CallContext and may submit
engine commands, which are collected per pass in `ExecutionResult.commands`.
"""

import logging
import math
import operator
from dataclasses import dataclass, field
from typing import List, Optional

from .values import (
    Value, ValueKind, Metadata, UserFunction,
    number_val, string_val, bool_val, array_val, function_val, user_val, wrap_value,
    unwrap_number, is_finite_number, merge_meta,
)
from .memory import ProgramMemory
from .commands import CommandManager, NullCommandManager, ModelingCommand
from .builtins import BuiltinRegistry, CallContext, get_builtin_registry
from ..ast import (
    AstNode, Program, Statement, VariableDeclaration, ExpressionStatement, ReturnStatement,
    Expression, Literal, Identifier, BinaryExpression, UnaryExpression,
    CallExpression, ArrayExpression, ObjectExpression, MemberExpression,
    PipeExpression, PipeSubstitution, FunctionExpression,
)
from ..config import ExecutorConfig, DEFAULT_CONFIG
from ..errors import (
    DslError,
    error_unknown_function,
    error_type_mismatch,
    error_resource_exhausted,
    error_missing_member,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one successful execution pass."""
    memory: ProgramMemory
    last_value: Optional[Value] = None
    shown: List[Value] = field(default_factory=list)
    commands: List[ModelingCommand] = field(default_factory=list)

    def get(self, name: str) -> Optional[Value]:
        """Look up a binding left in the pass's root memory."""
        return self.memory.get(name)


@dataclass
class RunResult:
    """Outcome of `compile_and_run`: either a result or the error that stopped it."""
    success: bool
    error: Optional[DslError] = None
    result: Optional[ExecutionResult] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class _PassRecorder(CommandManager):
    """Forwards commands to the real manager, keeping this pass's share."""

    def __init__(self, delegate: CommandManager):
        self.delegate = delegate
        self.commands: List[ModelingCommand] = []

    def send_modeling_command(self, command: ModelingCommand) -> None:
        self.commands.append(command)
        self.delegate.send_modeling_command(command)


class Executor:
    """
    Tree-walking executor.

    Evaluates AST nodes by dispatching to node-specific methods. One Executor
    may run many passes, one at a time.
    """

    def __init__(
        self,
        command_manager: Optional[CommandManager] = None,
        config: Optional[ExecutorConfig] = None,
        stdlib: Optional[BuiltinRegistry] = None,
    ):
        self.command_manager = command_manager if command_manager is not None else NullCommandManager()
        self.config = config or DEFAULT_CONFIG
        self.stdlib = stdlib or get_builtin_registry()
        self._reset("")

    def _reset(self, code: str) -> None:
        self._code = code
        self._lines = code.splitlines()
        self._steps = 0
        self._depth = 0
        self._shown: List[Value] = []
        self._pipe_values: List[Value] = []
        self._manager = _PassRecorder(self.command_manager)

    def execute(
        self,
        program: Program,
        memory: Optional[ProgramMemory] = None,
        code: str = "",
    ) -> ExecutionResult:
        """
        Run every statement of `program` in order.

        Args:
            program: The parsed program
            memory: Root scope to run in (pre-seeded bindings allowed);
                a fresh one is created when omitted
            code: The source text, hashed into command ids

        Returns:
            ExecutionResult with the memory, trailing value, shown values
            and the commands submitted during this pass

        Raises:
            ExecutionError: On the first failing statement
        """
        if memory is None:
            memory = ProgramMemory()
        self._reset(code)
        logger.debug("executing %d statements", len(program.body))

        last_value = None
        stmt = None
        try:
            for stmt in program.body:
                value = self._execute_statement(stmt, memory)
                last_value = value if isinstance(stmt, ExpressionStatement) else None
        except RecursionError as exc:
            span = stmt.span if stmt is not None else program.span
            raise error_resource_exhausted(
                "evaluation nested too deeply", span, self._source_line(span.start.line),
            ) from exc
        except DslError as err:
            if err.diagnostic.source_line is None:
                err.diagnostic.source_line = self._source_line(err.diagnostic.span.start.line)
            logger.debug("pass aborted after %d steps: %s", self._steps, err.diagnostic.message)
            raise

        logger.debug(
            "pass finished: %d steps, %d commands", self._steps, len(self._manager.commands)
        )
        return ExecutionResult(
            memory=memory,
            last_value=last_value,
            shown=list(self._shown),
            commands=list(self._manager.commands),
        )

    # --- Helpers ---

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _tick(self, node: AstNode) -> None:
        self._steps += 1
        if self._steps > self.config.max_steps:
            raise error_resource_exhausted(
                f"evaluation exceeded {self.config.max_steps} steps", node.span,
                self._source_line(node.span.start.line),
            )

    def _type_error(self, message: str, node: AstNode):
        return error_type_mismatch(message, node.span, self._source_line(node.span.start.line))

    @staticmethod
    def _own_meta(node: AstNode) -> Metadata:
        return Metadata(node.source_range, node.path)

    # --- Statements ---

    def _execute_statement(self, stmt: Statement, memory: ProgramMemory) -> Optional[Value]:
        """Execute one statement, returning the value of an expression statement."""
        self._tick(stmt)
        if isinstance(stmt, VariableDeclaration):
            value = self._evaluate(stmt.init, memory)
            memory.define(stmt.name, value, stmt.span)
            return None
        elif isinstance(stmt, ExpressionStatement):
            return self._evaluate(stmt.expression, memory)
        elif isinstance(stmt, ReturnStatement):
            raise self._type_error("'return' outside a function body", stmt)
        else:
            raise self._type_error(f"unknown statement type {type(stmt).__name__}", stmt)

    # --- Expressions ---

    def _evaluate(self, expr: Expression, memory: ProgramMemory) -> Value:
        """Evaluate an expression to produce a Value."""
        self._tick(expr)
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return memory.lookup(expr.name, expr.span)
        elif isinstance(expr, BinaryExpression):
            return self._eval_binary(expr, memory)
        elif isinstance(expr, UnaryExpression):
            return self._eval_unary(expr, memory)
        elif isinstance(expr, CallExpression):
            return self._eval_call(expr, memory)
        elif isinstance(expr, ArrayExpression):
            items = [self._evaluate(element, memory) for element in expr.elements]
            return array_val(items, (self._own_meta(expr),))
        elif isinstance(expr, ObjectExpression):
            members = {}
            for prop in expr.properties:
                members[prop.key.name] = self._evaluate(prop.value, memory)
            return user_val(members, (self._own_meta(expr),))
        elif isinstance(expr, MemberExpression):
            return self._eval_member(expr, memory)
        elif isinstance(expr, PipeExpression):
            return self._eval_pipe(expr, memory)
        elif isinstance(expr, PipeSubstitution):
            if not self._pipe_values:
                raise self._type_error("'%' used outside a pipe", expr)
            return self._pipe_values[-1]
        elif isinstance(expr, FunctionExpression):
            return function_val(UserFunction(expr, memory), (self._own_meta(expr),))
        else:
            raise self._type_error(f"unknown expression type {type(expr).__name__}", expr)

    def _eval_literal(self, lit: Literal) -> Value:
        meta = (self._own_meta(lit),)
        if isinstance(lit.value, bool):
            return bool_val(lit.value, meta)
        if isinstance(lit.value, (int, float)):
            if not is_finite_number(lit.value):
                raise self._type_error(f"number literal {lit.value!r} is out of range", lit)
            return number_val(lit.value, meta)
        if isinstance(lit.value, str):
            return string_val(lit.value, meta)
        raise self._type_error(f"unsupported literal {lit.value!r}", lit)

    def _eval_binary(self, op: BinaryExpression, memory: ProgramMemory) -> Value:
        left = self._evaluate(op.left, memory)
        right = self._evaluate(op.right, memory)
        meta = (self._own_meta(op),)

        if op.operator == "+" and left.kind == ValueKind.STRING and right.kind == ValueKind.STRING:
            return string_val(left.data + right.data, meta)

        a = unwrap_number(left)
        b = unwrap_number(right)
        if a is None or b is None:
            raise self._type_error(
                f"cannot apply '{op.operator}' to {left.kind.value} and {right.kind.value}", op
            )
        if op.operator in ("/", "%") and b == 0:
            what = "division" if op.operator == "/" else "modulo"
            raise self._type_error(f"{what} by zero", op)

        func = _ARITHMETIC.get(op.operator)
        if func is None:
            raise self._type_error(f"unknown binary operator '{op.operator}'", op)
        try:
            result = func(a, b)
        except (OverflowError, ValueError) as exc:
            raise self._type_error(f"'{op.operator}' result is out of range", op) from exc
        if not is_finite_number(result):
            raise self._type_error(f"'{op.operator}' result is out of range", op)
        return number_val(result, meta)

    def _eval_unary(self, op: UnaryExpression, memory: ProgramMemory) -> Value:
        operand = self._evaluate(op.argument, memory)
        meta = (self._own_meta(op),)

        if op.operator == "-":
            n = unwrap_number(operand)
            if n is None:
                raise self._type_error(f"cannot negate {operand.kind.value}", op)
            if not is_finite_number(n):
                raise self._type_error("'-' result is out of range", op)
            return number_val(-n, meta)
        elif op.operator == "!":
            if operand.kind != ValueKind.BOOLEAN:
                raise self._type_error(f"cannot apply '!' to {operand.kind.value}", op)
            return bool_val(not operand.data, meta)
        raise self._type_error(f"unknown unary operator '{op.operator}'", op)

    def _eval_member(self, expr: MemberExpression, memory: ProgramMemory) -> Value:
        target = self._evaluate(expr.object, memory)
        if expr.computed:
            key_value = self._evaluate(expr.property, memory)
            if key_value.kind == ValueKind.STRING:
                key = key_value.data
            else:
                key = unwrap_number(key_value)
                if key is None:
                    raise self._type_error(
                        f"cannot index with {key_value.kind.value}", expr.property
                    )
        else:
            key = expr.property.name

        data = target.data
        while isinstance(data, Value) and target.kind == ValueKind.USER_VAL:
            target, data = data, data.data

        if target.kind == ValueKind.ARRAY or (
            target.kind == ValueKind.USER_VAL and isinstance(data, (list, tuple))
        ):
            item = self._index(data, key, expr)
        elif target.kind == ValueKind.USER_VAL and isinstance(data, dict):
            if not isinstance(key, str):
                raise self._type_error(f"object keys are strings, got {key!r}", expr.property)
            if key not in data:
                raise error_missing_member(
                    f"property '{key}' not found", expr.property.span,
                    self._source_line(expr.property.span.start.line),
                )
            item = data[key]
        else:
            raise self._type_error(f"cannot read a member of {target.kind.value}", expr)

        value = wrap_value(item)
        return value.with_meta(*merge_meta(self._own_meta(expr), value, target))

    def _index(self, items, key, expr: MemberExpression):
        if isinstance(key, str):
            raise self._type_error(f"arrays are indexed by number, got '{key}'", expr.property)
        if not is_finite_number(key) or key != int(key):
            raise self._type_error(f"array index must be a whole number, got {key!r}", expr.property)
        index = int(key)
        if not 0 <= index < len(items):
            raise error_missing_member(
                f"index {index} is out of range for an array of {len(items)}",
                expr.property.span, self._source_line(expr.property.span.start.line),
            )
        return items[index]

    def _eval_pipe(self, pipe: PipeExpression, memory: ProgramMemory) -> Value:
        """Run the stages left to right, each seeing the previous result as `%`."""
        value = self._evaluate(pipe.body[0], memory)
        for stage in pipe.body[1:]:
            self._pipe_values.append(value)
            try:
                value = self._evaluate(stage, memory)
            finally:
                self._pipe_values.pop()
        return value

    def _eval_call(self, call: CallExpression, memory: ProgramMemory) -> Value:
        name = call.callee.name
        bound = memory.get(name)
        if bound is not None and bound.kind == ValueKind.FUNCTION:
            args = [self._evaluate(arg, memory) for arg in call.arguments]
            return self._call_user_function(call, bound.data, args)

        func = self.stdlib.get_function(name)
        if func is None:
            raise error_unknown_function(
                name, call.callee.span, self._source_line(call.callee.span.start.line)
            )
        args = [self._evaluate(arg, memory) for arg in call.arguments]
        if not func.accepts(len(args)):
            raise self._type_error(
                f"{name}() takes {func.describe_arity()} arguments, got {len(args)}", call
            )
        ctx = CallContext(
            code=self._code,
            source_range=call.source_range,
            path_to_node=call.path,
            command_manager=self._manager,
            span=call.span,
            shown=self._shown,
        )
        return func.implementation(ctx, *args)

    def _call_user_function(self, call: CallExpression, func: UserFunction,
                            args: List[Value]) -> Value:
        name = call.callee.name
        if len(args) != func.arity:
            raise self._type_error(
                f"{name}() takes {func.arity} arguments, got {len(args)}", call
            )
        if self._depth >= self.config.max_call_depth:
            raise error_resource_exhausted(
                f"call depth exceeded {self.config.max_call_depth}", call.span,
                self._source_line(call.span.start.line),
            )

        scope = func.closure.child_scope(f"fn {name}")
        for param, arg in zip(func.node.params, args):
            scope.define(param.name, arg, param.span)

        self._depth += 1
        try:
            result = None
            for stmt in func.node.body:
                if isinstance(stmt, ReturnStatement):
                    self._tick(stmt)
                    result = self._evaluate(stmt.argument, scope)
                    break
                result = self._execute_statement(stmt, scope)
        finally:
            self._depth -= 1

        if result is None:
            raise self._type_error(f"{name}() did not produce a value", call)
        return result.with_meta(*merge_meta(self._own_meta(call), result))


def _remainder(a, b):
    """Remainder taking the sign of the dividend; exact for integers."""
    if isinstance(a, int) and isinstance(b, int):
        r = abs(a) % abs(b)
        return -r if a < 0 else r
    return math.fmod(a, b)


_ARITHMETIC = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": _remainder,
}


def execute(
    program: Program,
    memory: Optional[ProgramMemory] = None,
    code: str = "",
    command_manager: Optional[CommandManager] = None,
    config: Optional[ExecutorConfig] = None,
) -> ExecutionResult:
    """
    Execute a parsed program.

    This is a convenience wrapper around Executor.execute().
    """
    return Executor(command_manager, config).execute(program, memory, code)


def compile_and_run(
    code: str,
    memory: Optional[ProgramMemory] = None,
    command_manager: Optional[CommandManager] = None,
    config: Optional[ExecutorConfig] = None,
) -> RunResult:
    """
    High-level API to tokenize, parse and execute source code in one call.

        from cadlang import compile_and_run

        run = compile_and_run('''
            const sketch = startSketchAt([0, 0])
            const part = extrude(5, close(lineTo([0, 4], lineTo([4, 0], sketch))))
        ''')

        if run.success:
            part = run.result.get("part")
        else:
            print(run.error_message)

    Errors are returned in the RunResult instead of being raised.
    """
    from ..parser import parse_source

    try:
        program = parse_source(code)
        result = Executor(command_manager, config).execute(program, memory, code)
    except DslError as err:
        return RunResult(success=False, error=err)
    return RunResult(success=True, result=result)
