"""
cadlang runtime - tree-walking execution of parsed programs.

This module provides:
- Executor: Runs programs against a ProgramMemory
- Value: Tagged runtime values carrying source metadata
- ProgramMemory: Lexically scoped variable bindings
- BuiltinRegistry: The standard library, including modeling functions
- command_id: Deterministic ids for engine commands
- evaluate_scratch: Isolated one-off expression evaluation
"""

from .values import (
    Value,
    ValueKind,
    Metadata,
    Segment,
    SketchGroup,
    ExtrudeSurface,
    ExtrudeGroup,
    UserFunction,
    number_val,
    string_val,
    bool_val,
    array_val,
    sketch_group_val,
    extrude_group_val,
    function_val,
    user_val,
    wrap_value,
    unwrap_number,
    is_finite_number,
    merge_meta,
    metadata_to_json,
)

from .memory import ProgramMemory

from .identity import (
    ID_SCHEMA_VERSION,
    canonical,
    command_id,
    compute_source_signature,
    verify_source_signature,
)

from .commands import (
    ModelingCommand,
    StartPath,
    ExtendPath,
    ClosePath,
    Extrude,
    CommandManager,
    RecordingCommandManager,
    NullCommandManager,
)

from .builtins import (
    CallContext,
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
)

from .interpreter import (
    Executor,
    ExecutionResult,
    RunResult,
    execute,
    compile_and_run,
)

from .scratch import (
    ScratchResult,
    evaluate_scratch,
)

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'Metadata',
    'Segment',
    'SketchGroup',
    'ExtrudeSurface',
    'ExtrudeGroup',
    'UserFunction',
    'number_val',
    'string_val',
    'bool_val',
    'array_val',
    'sketch_group_val',
    'extrude_group_val',
    'function_val',
    'user_val',
    'wrap_value',
    'unwrap_number',
    'is_finite_number',
    'merge_meta',
    'metadata_to_json',

    # Memory
    'ProgramMemory',

    # Identity
    'ID_SCHEMA_VERSION',
    'canonical',
    'command_id',
    'compute_source_signature',
    'verify_source_signature',

    # Commands
    'ModelingCommand',
    'StartPath',
    'ExtendPath',
    'ClosePath',
    'Extrude',
    'CommandManager',
    'RecordingCommandManager',
    'NullCommandManager',

    # Builtins
    'CallContext',
    'BuiltinFunction',
    'BuiltinRegistry',
    'get_builtin_registry',

    # Executor
    'Executor',
    'ExecutionResult',
    'RunResult',
    'execute',
    'compile_and_run',

    # Scratch
    'ScratchResult',
    'evaluate_scratch',
]
