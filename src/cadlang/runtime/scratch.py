"""
Scratch evaluation: compute a one-off expression against a copy of memory.

Used for "what would this value be" previews while editing. The expression
runs as `const __result__ = <expression>` in an isolated snapshot with a
command manager that drops everything, so neither the authoritative memory
nor the engine ever sees the pass.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .values import Value, unwrap_number, is_finite_number
from .memory import ProgramMemory
from .commands import NullCommandManager
from .interpreter import Executor
from ..ast import Expression, VariableDeclaration
from ..config import ExecutorConfig
from ..errors import DslError, error_unexpected_token
from ..parser import parse_source

logger = logging.getLogger(__name__)

RESULT_NAME = "__result__"


@dataclass
class ScratchResult:
    """
    Outcome of a scratch pass.

    `number` is the numeric result or NaN; spans inside `value_node` are
    offsets into `code`, the wrapped source that was actually run.
    """
    value: Optional[Value] = None
    number: float = math.nan
    value_node: Optional[Expression] = None
    error: Optional[DslError] = None
    code: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def display(self) -> str:
        """The number as an editor would show it, or NAN."""
        if math.isnan(self.number):
            return "NAN"
        if float(self.number).is_integer():
            return str(int(self.number))
        return repr(self.number)


def evaluate_scratch(
    expression: str,
    memory: Optional[ProgramMemory] = None,
    names: Optional[Iterable[str]] = None,
    config: Optional[ExecutorConfig] = None,
) -> ScratchResult:
    """
    Evaluate `expression` against a snapshot of `memory`.

    Args:
        expression: Source text of a single expression
        memory: Memory to copy bindings from (never mutated)
        names: Restrict the snapshot to these names
        config: Executor limits for the pass

    Returns:
        A ScratchResult; errors are captured in `error`, never raised
    """
    code = f"const {RESULT_NAME} = {expression}"
    scratch = memory.snapshot(names) if memory is not None else ProgramMemory(name="snapshot")
    result = ScratchResult(code=code)

    try:
        program = parse_source(code)
        if len(program.body) != 1:
            extra = program.body[1]
            raise error_unexpected_token("a single expression", "another statement", extra.span)
        declaration = program.body[0]
        if not isinstance(declaration, VariableDeclaration):
            raise error_unexpected_token("a single expression", "a statement", declaration.span)
        result.value_node = declaration.init

        Executor(NullCommandManager(), config).execute(program, scratch, code)
    except DslError as err:
        logger.debug("scratch evaluation of %r failed: %s", expression, err.diagnostic.message)
        result.error = err
        return result

    value = scratch.lookup(RESULT_NAME)
    result.value = value
    number = unwrap_number(value)
    if is_finite_number(number):
        result.number = float(number)
    return result
