"""
cadlang exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E3xx: Runtime errors

Every error wraps a `Diagnostic` that records the implicated source span, so
callers can highlight the offending text.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan, SourceRange


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single error diagnostic with its location and hints."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def source_range(self) -> SourceRange:
        return self.span.range

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "sourceRange": list(self.source_range),
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class DslError(Exception):
    """Base exception for cadlang errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def source_range(self) -> SourceRange:
        return self.diagnostic.source_range

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexError(DslError):
    """Error during lexical analysis (E0xx)."""

    @property
    def offset(self) -> int:
        return self.diagnostic.span.start.offset


class ParseError(DslError):
    """Error during parsing (E1xx)."""


class ExecutionError(DslError):
    """Error while executing a program (E3xx)."""


class DuplicateBinding(ExecutionError):
    """A name was declared twice in the same scope."""


class UndefinedVariable(ExecutionError):
    """A name was referenced that no enclosing scope defines."""


class UnknownFunction(ExecutionError):
    """A call named neither a user function nor a library function."""


class TypeMismatch(ExecutionError):
    """An operation was applied to values of the wrong kind."""


class ResourceExhausted(ExecutionError):
    """The evaluation step or call-depth budget ran out."""


def _diag(code: str, message: str, span: SourceSpan, source_line: Optional[str] = None,
          hints: Optional[List[str]] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E001: Unexpected character."""
    return LexError(_diag("E001", f"unexpected character '{char}'", span, source_line))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexError:
    """E002: Unterminated string literal."""
    return LexError(_diag(
        "E002", "unterminated string literal", span, source_line,
        ["string literals must be closed with matching quotes on the same line"],
    ))


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexError:
    """E003: Unterminated multi-line comment."""
    return LexError(_diag(
        "E003", "unterminated multi-line comment (expected closing */)", span, source_line
    ))


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E004: Invalid escape sequence in string."""
    return LexError(_diag(
        "E004", f"invalid escape sequence '\\{seq}'", span, source_line,
        ["valid escape sequences: \\n, \\t, \\r, \\\", \\', \\\\, \\0"],
    ))


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None,
                                 hints: Optional[List[str]] = None) -> LexError:
    """E005: Invalid or out-of-range number literal."""
    return LexError(_diag("E005", f"invalid number literal '{text}'", span, source_line, hints))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParseError:
    """E101: Unexpected token."""
    return ParseError(_diag("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParseError:
    """E102: Unexpected end of input."""
    return ParseError(_diag("E102", f"unexpected end of input, expected {expected}", span))


def error_return_outside_function(span: SourceSpan, source_line: str = None) -> ParseError:
    """E103: return at program level."""
    return ParseError(_diag(
        "E103", "'return' is only allowed inside a function body", span, source_line
    ))


def error_invalid_callee(span: SourceSpan, source_line: str = None) -> ParseError:
    """E101: Call on something other than a name, e.g. f(1)(2)."""
    return ParseError(_diag(
        "E101", "callee must be an identifier", span, source_line,
        ["bind the result to a name, then call the name"],
    ))


def error_invalid_pipe(message: str, span: SourceSpan, source_line: str = None) -> ParseError:
    """E104: Misplaced '%' or a pipe stage that is not a call."""
    return ParseError(_diag("E104", message, span, source_line))


def error_nesting_too_deep(limit: int, span: SourceSpan, source_line: str = None) -> ParseError:
    """E105: Expression nesting beyond what the parser accepts."""
    return ParseError(_diag(
        "E105", f"expression is nested more than {limit} levels deep", span, source_line,
        ["split the expression into intermediate declarations"],
    ))


# --- Runtime error codes ---

def error_duplicate_binding(name: str, span: SourceSpan, source_line: str = None) -> DuplicateBinding:
    """E301: Name already defined in this scope."""
    return DuplicateBinding(_diag(
        "E301", f"'{name}' is already defined in this scope", span, source_line,
        ["choose a different name, or shadow it inside a function body"],
    ))


def error_undefined_variable(name: str, span: SourceSpan, source_line: str = None) -> UndefinedVariable:
    """E302: Undefined variable."""
    return UndefinedVariable(_diag("E302", f"undefined variable '{name}'", span, source_line))


def error_unknown_function(name: str, span: SourceSpan, source_line: str = None) -> UnknownFunction:
    """E303: Unknown function."""
    return UnknownFunction(_diag("E303", f"unknown function '{name}'", span, source_line))


def error_type_mismatch(message: str, span: SourceSpan, source_line: str = None) -> TypeMismatch:
    """E304: Type mismatch."""
    return TypeMismatch(_diag("E304", message, span, source_line))


def error_resource_exhausted(message: str, span: SourceSpan, source_line: str = None) -> ResourceExhausted:
    """E305: Step or depth budget exceeded."""
    return ResourceExhausted(_diag(
        "E305", message, span, source_line,
        ["raise max_steps / max_call_depth in the executor configuration"],
    ))


def error_missing_member(message: str, span: SourceSpan, source_line: str = None) -> UndefinedVariable:
    """E306: Property or index not present on an object or array."""
    return UndefinedVariable(_diag("E306", message, span, source_line))
