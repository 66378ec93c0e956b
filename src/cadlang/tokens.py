"""
Token types for the cadlang lexer.

Token types are grouped into the broad kinds the parser and editor tooling
care about (identifier, number, string, operator, punctuation, keyword).
Source positions are kept both as line/column locations for messages and
as character offset ranges for editor tooling.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional


class TokenKind(Enum):
    """Broad token categories."""
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    KEYWORD = "keyword"
    EOF = "eof"


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14, .5, 1e-9
    STRING = auto()             # "hello", 'hello'

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    CONST = auto()              # const
    LET = auto()                # let
    VAR = auto()                # var
    FN = auto()                 # fn
    RETURN = auto()             # return
    TRUE = auto()               # true
    FALSE = auto()              # false

    # --- Operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    BANG = auto()               # !
    PIPE = auto()               # |>

    # --- Punctuation ---
    ASSIGN = auto()             # =
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    COMMA = auto()              # ,
    COLON = auto()              # :
    DOT = auto()                # .
    ARROW = auto()              # =>

    # --- Special ---
    EOF = auto()


class SourceRange(NamedTuple):
    """Character offsets [start, end) of a piece of source text."""
    start: int
    end: int

    def contains(self, pos: int) -> bool:
        return self.start <= pos <= self.end

    def slice(self, source: str) -> str:
        return source[self.start:self.end]

    def to_json(self) -> list:
        return [self.start, self.end]


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    @property
    def range(self) -> SourceRange:
        return SourceRange(self.start.offset, self.end.offset)

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


def span_between(start: SourceSpan, end: SourceSpan) -> SourceSpan:
    """Span covering `start` through `end`."""
    return SourceSpan(start.start, end.end)


# Spans for nodes built by tools rather than parsed from text.
NO_LOCATION = SourceLocation(0, 0, 0)
NO_SPAN = SourceSpan(NO_LOCATION, NO_LOCATION)


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (float, str, etc.)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def kind(self) -> TokenKind:
        return TOKEN_KINDS[self.type]

    @property
    def range(self) -> SourceRange:
        return self.span.range

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "const": TokenType.CONST,
    "let": TokenType.LET,
    "var": TokenType.VAR,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

DECLARATION_KEYWORDS = {TokenType.CONST, TokenType.LET, TokenType.VAR, TokenType.FN}

OPERATORS: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.BANG: "!",
    TokenType.PIPE: "|>",
}

TOKEN_KINDS: dict[TokenType, TokenKind] = {
    TokenType.NUMBER: TokenKind.NUMBER,
    TokenType.STRING: TokenKind.STRING,
    TokenType.IDENTIFIER: TokenKind.IDENTIFIER,
    TokenType.EOF: TokenKind.EOF,
}
TOKEN_KINDS.update({t: TokenKind.KEYWORD for t in KEYWORDS.values()})
TOKEN_KINDS.update({t: TokenKind.OPERATOR for t in OPERATORS})
TOKEN_KINDS.update({
    t: TokenKind.PUNCTUATION for t in TokenType if t not in TOKEN_KINDS
})


def describe(token_type: TokenType) -> str:
    """Human readable name of a token type for error messages."""
    if token_type in OPERATORS:
        return f"'{OPERATORS[token_type]}'"
    for word, kw_type in KEYWORDS.items():
        if kw_type == token_type:
            return f"'{word}'"
    return _PUNCTUATION_NAMES.get(token_type, token_type.name.lower())


_PUNCTUATION_NAMES = {
    TokenType.ASSIGN: "'='",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
    TokenType.LBRACKET: "'['",
    TokenType.RBRACKET: "']'",
    TokenType.LBRACE: "'{'",
    TokenType.RBRACE: "'}'",
    TokenType.COMMA: "','",
    TokenType.COLON: "':'",
    TokenType.DOT: "'.'",
    TokenType.ARROW: "'=>'",
    TokenType.EOF: "end of input",
}
