"""
cadlang: a small declarative modeling language.

This module provides:
- Lexer: Tokenizes source code
- Parser: Builds an AST whose nodes carry source ranges and paths
- Executor: Walks the AST against scoped Program Memory, issuing engine
  commands with deterministic ids
- Transforms: Pure AST rewrites for editor tooling
- recast: Prints an AST back to source

Usage:
    from cadlang import parse_source, Executor, RecordingCommandManager

    code = '''
    const sketch = close(lineTo([0, 4], lineTo([4, 0], startSketchAt([0, 0]))))
    const part = extrude(5, sketch)
    '''
    manager = RecordingCommandManager()
    result = Executor(manager).execute(parse_source(code), code=code)
    for command in result.commands:
        print(command.to_json())
"""

__version__ = "0.1.0"

from .tokens import (
    Token,
    TokenKind,
    TokenType,
    SourceRange,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    # Base
    AstNode,
    Path,
    # Expressions
    Expression,
    Literal,
    Identifier,
    BinaryExpression,
    UnaryExpression,
    CallExpression,
    ArrayExpression,
    ObjectExpression,
    ObjectProperty,
    MemberExpression,
    PipeExpression,
    PipeSubstitution,
    FunctionExpression,
    # Statements
    Statement,
    VariableDeclaration,
    ExpressionStatement,
    ReturnStatement,
    Program,
    # Helpers
    children,
    walk,
    get_node_from_path,
    ast_equal,
    format_ast,
    print_ast,
)

from .errors import (
    DslError,
    LexError,
    ParseError,
    ExecutionError,
    DuplicateBinding,
    UndefinedVariable,
    UnknownFunction,
    TypeMismatch,
    ResourceExhausted,
    Diagnostic,
    ErrorSeverity,
)

from .config import (
    ExecutorConfig,
    load_config,
)

from .runtime import (
    Value,
    ValueKind,
    Metadata,
    SketchGroup,
    ExtrudeGroup,
    ProgramMemory,
    ModelingCommand,
    CommandManager,
    RecordingCommandManager,
    NullCommandManager,
    Executor,
    ExecutionResult,
    RunResult,
    compile_and_run,
    command_id,
    metadata_to_json,
    evaluate_scratch,
)

from .transforms import (
    normalize_sign,
    NormalizeOptions,
    replace_value,
    rename_identifiers,
)

from .recast import (
    recast,
    FormatOptions,
)

__all__ = [
    '__version__',
    # Tokens
    'Token',
    'TokenKind',
    'TokenType',
    'SourceRange',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    # Lexer
    'Lexer',
    'tokenize',
    # Parser
    'Parser',
    'parse',
    'parse_source',
    # AST
    'AstNode',
    'Path',
    'Expression',
    'Literal',
    'Identifier',
    'BinaryExpression',
    'UnaryExpression',
    'CallExpression',
    'ArrayExpression',
    'ObjectExpression',
    'ObjectProperty',
    'MemberExpression',
    'PipeExpression',
    'PipeSubstitution',
    'FunctionExpression',
    'Statement',
    'VariableDeclaration',
    'ExpressionStatement',
    'ReturnStatement',
    'Program',
    'children',
    'walk',
    'get_node_from_path',
    'ast_equal',
    'format_ast',
    'print_ast',
    # Errors
    'DslError',
    'LexError',
    'ParseError',
    'ExecutionError',
    'DuplicateBinding',
    'UndefinedVariable',
    'UnknownFunction',
    'TypeMismatch',
    'ResourceExhausted',
    'Diagnostic',
    'ErrorSeverity',
    # Config
    'ExecutorConfig',
    'load_config',
    # Runtime
    'Value',
    'ValueKind',
    'Metadata',
    'SketchGroup',
    'ExtrudeGroup',
    'ProgramMemory',
    'ModelingCommand',
    'CommandManager',
    'RecordingCommandManager',
    'NullCommandManager',
    'Executor',
    'ExecutionResult',
    'RunResult',
    'compile_and_run',
    'command_id',
    'metadata_to_json',
    'evaluate_scratch',
    # Transforms
    'normalize_sign',
    'NormalizeOptions',
    'replace_value',
    'rename_identifiers',
    # Recast
    'recast',
    'FormatOptions',
]
