"""
cadlang AST transformation framework.

Provides pure Program -> Program rewrites used by editor tooling:
- Sign normalisation (double negation, negative literals)
- Value replacement at a source range
- Identifier renaming

Usage:
    from cadlang.transforms import TransformPipeline, SignNormalizeTransform

    pipeline = TransformPipeline()
    pipeline.add(SignNormalizeTransform())

    simplified = pipeline.apply(program)
"""

from .base import (
    AstTransform,
    TreeTransform,
    TransformPipeline,
    IdentityTransform,
)

from .normalize import (
    NormalizeOptions,
    SignNormalizeTransform,
    normalize_sign,
    simplify_negation,
)

from .edit import (
    ReplaceValueTransform,
    RenameTransform,
    make_literal,
    make_value_expression,
    replace_value,
    rename_identifiers,
)

__all__ = [
    'AstTransform',
    'TreeTransform',
    'TransformPipeline',
    'IdentityTransform',
    'NormalizeOptions',
    'SignNormalizeTransform',
    'normalize_sign',
    'simplify_negation',
    'ReplaceValueTransform',
    'RenameTransform',
    'make_literal',
    'make_value_expression',
    'replace_value',
    'rename_identifiers',
]
