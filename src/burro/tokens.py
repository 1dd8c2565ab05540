"""Token types, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Structural (single-character)
    DOT = auto()  # . introducing a command
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    LBRACE = auto()  # {
    RBRACE = auto()  # }
    PIPE = auto()  # |

    # Content
    IDENTIFIER = auto()  # command name following a DOT
    TEXT = auto()  # literal text, single newlines folded to spaces
    ESCAPE = auto()  # \X: value is the literal character

    # Paragraph boundary (two or more newlines)
    PARAGRAPH_BREAK = auto()

    # Variables
    DEFINE_START = auto()  # #define(name)(: value is the name
    DEFINE_END = auto()  # closing ) of a definition fragment
    VARIABLE = auto()  # ~name: value is the name

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based character offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token with resolved value and original source text."""

    type: TokenType
    value: str
    raw: str
    span: Span


# Characters that a backslash turns into literal text
SPECIAL_CHARS = frozenset(".[]{}|~\\")


def is_ident_start(ch: str) -> bool:
    """Return True if ch may begin a command or variable name."""
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def is_ident_char(ch: str) -> bool:
    """Return True if ch is a valid identifier character."""
    return is_ident_start(ch) or ("0" <= ch <= "9")
