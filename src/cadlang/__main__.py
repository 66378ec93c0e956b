#!/usr/bin/env python3
"""
CLI for the cadlang toolchain.

Usage:
    python -m cadlang tokens FILE
    python -m cadlang ast FILE
    python -m cadlang run FILE [--var NAME=VALUE ...] [--config CONFIG.yaml] [--json]
    python -m cadlang calc EXPR [--var NAME=VALUE ...]
    python -m cadlang fmt FILE [--tab-size N] [--use-tabs] [--normalize] [--config CONFIG.yaml]

Examples:
    # Show the token stream
    python -m cadlang tokens part.cad

    # Execute a script, recording the engine commands it would send
    python -m cadlang run part.cad --var height=12 --json

    # Quick calculation against seeded variables
    python -m cadlang calc "legLen(5, 3) * 2" --var scale=1.5
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional


def parse_param(param_str: str) -> tuple:
    """Parse a parameter string like 'name=value' into (name, typed_value)."""
    if '=' not in param_str:
        raise ValueError(f"Invalid variable format: {param_str} (expected name=value)")

    name, value_str = param_str.split('=', 1)
    name = name.strip()
    value_str = value_str.strip()

    if value_str.lower() == 'true':
        return (name, True)
    elif value_str.lower() == 'false':
        return (name, False)

    try:
        return (name, int(value_str))
    except ValueError:
        pass

    try:
        return (name, float(value_str))
    except ValueError:
        pass

    # Strip quotes if present
    if (value_str.startswith('"') and value_str.endswith('"')) or \
       (value_str.startswith("'") and value_str.endswith("'")):
        value_str = value_str[1:-1]

    return (name, value_str)


def seed_memory(var_strs: Optional[List[str]]):
    """Build a root ProgramMemory from --var NAME=VALUE options."""
    from .runtime import ProgramMemory, wrap_value

    memory = ProgramMemory()
    for var_str in var_strs or []:
        name, value = parse_param(var_str)
        memory.define(name, wrap_value(value))
    return memory


def _read_source(path_str: str) -> Optional[str]:
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def cmd_tokens(args):
    """Print the token stream of a file."""
    from . import tokenize, DslError

    source = _read_source(args.file)
    if source is None:
        return 1
    try:
        tokens = tokenize(source, args.file)
    except DslError as e:
        print(e, file=sys.stderr)
        return 1

    for token in tokens:
        start, end = token.range
        print(f"{start:>5}-{end:<5} {token.kind.value:<12} {token.type.name:<11} {token.lexeme!r}")
    return 0


def cmd_ast(args):
    """Print the AST of a file."""
    from . import parse_source, format_ast, DslError

    source = _read_source(args.file)
    if source is None:
        return 1
    try:
        program = parse_source(source, args.file)
    except DslError as e:
        print(e, file=sys.stderr)
        return 1

    print(format_ast(program))
    return 0


def cmd_run(args):
    """Execute a file and report bindings, shown values and commands."""
    from . import parse_source, DslError
    from .config import load_config, DEFAULT_CONFIG
    from .runtime import Executor, RecordingCommandManager, compute_source_signature

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        memory = seed_memory(args.var)
    except (OSError, ValueError, DslError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    manager = RecordingCommandManager()
    try:
        program = parse_source(source, args.file)
        result = Executor(manager, config).execute(program, memory, source)
    except DslError as e:
        if args.json:
            print(json.dumps({"success": False, "error": e.diagnostic.to_json()}, indent=2))
        else:
            print(e, file=sys.stderr)
        return 1

    if args.json:
        report: Dict[str, Any] = {
            "success": True,
            "sourceSignature": compute_source_signature(source),
            "bindings": result.memory.to_json(),
            "shown": [value.to_python() for value in result.shown],
            "commands": [command.to_json() for command in result.commands],
        }
        print(json.dumps(report, indent=2))
        return 0

    print("Bindings:")
    for name, value in result.memory.local_items():
        print(f"  {name} = {value.to_python()}")
    if result.shown:
        print("Shown:")
        for value in result.shown:
            print(f"  {value.to_python()}")
    print(f"Commands ({len(result.commands)}):")
    for command in result.commands:
        print(f"  {command.type:<12} {command.id}  {list(command.range)}")
    return 0


def cmd_calc(args):
    """Evaluate a one-off expression."""
    from .runtime import evaluate_scratch
    from . import DslError

    try:
        memory = seed_memory(args.var)
    except (ValueError, DslError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = evaluate_scratch(args.expression, memory)
    print(result.display())
    if result.error is not None:
        print(result.error, file=sys.stderr)
        return 1
    return 0


def cmd_fmt(args):
    """Print a file back in canonical layout, optionally sign-normalised."""
    from . import parse_source, DslError
    from .config import load_config, DEFAULT_CONFIG
    from .recast import recast, FormatOptions
    from .transforms import NormalizeOptions, SignNormalizeTransform

    source = _read_source(args.file)
    if source is None:
        return 1
    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        program = parse_source(source, args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except DslError as e:
        print(e, file=sys.stderr)
        return 1

    if args.normalize:
        program = SignNormalizeTransform(NormalizeOptions.from_config(config)).transform(program)

    options = FormatOptions(tab_size=args.tab_size, use_tabs=args.use_tabs)
    sys.stdout.write(recast(program, options))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m cadlang',
        description='cadlang tokenizer, parser and executor',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    tokens_parser = subparsers.add_parser('tokens', help='Print the token stream')
    tokens_parser.add_argument('file', help='Source file')

    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree')
    ast_parser.add_argument('file', help='Source file')

    run_parser = subparsers.add_parser('run', help='Execute a source file')
    run_parser.add_argument('file', help='Source file')
    run_parser.add_argument('--var', action='append', metavar='NAME=VALUE',
                            help='Pre-seeded variable (can be repeated)')
    run_parser.add_argument('--config', metavar='FILE', help='YAML executor configuration')
    run_parser.add_argument('--json', action='store_true', help='Print a JSON report')

    calc_parser = subparsers.add_parser('calc', help='Evaluate a single expression')
    calc_parser.add_argument('expression', help='Expression to evaluate')
    calc_parser.add_argument('--var', action='append', metavar='NAME=VALUE',
                             help='Pre-seeded variable (can be repeated)')

    fmt_parser = subparsers.add_parser('fmt', help='Reformat a source file')
    fmt_parser.add_argument('file', help='Source file')
    fmt_parser.add_argument('--tab-size', type=int, default=2, help='Spaces per indent level')
    fmt_parser.add_argument('--use-tabs', action='store_true', help='Indent with tabs')
    fmt_parser.add_argument('--normalize', action='store_true',
                            help='Simplify double negations and negated negative literals')
    fmt_parser.add_argument('--config', metavar='FILE', help='YAML configuration (normalisation settings)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'ast':
        return cmd_ast(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'calc':
        return cmd_calc(args)
    elif args.action == 'fmt':
        return cmd_fmt(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
