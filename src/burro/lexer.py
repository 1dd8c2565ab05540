"""Burro lexer: converts source text into a flat token stream."""

from __future__ import annotations

from burro.errors import LexError
from burro.tokens import (
    SPECIAL_CHARS,
    Position,
    Span,
    Token,
    TokenType,
    is_ident_char,
    is_ident_start,
)

_DEFINE = "#define("

_SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "|": TokenType.PIPE,
}


class Lexer:
    """Tokenize Burro source text into a stream of Token objects."""

    def __init__(self, source: str, filename: str = "input.bur") -> None:
        self._source = source
        self._filename = filename
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: list[Token] = []
        # Open #define fragments: (start position, parenthesis depth)
        self._define: tuple[Position, int] | None = None

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        self._skip_comment_lines()
        while self._pos < len(self._source):
            self._lex_normal()

        if self._define is not None:
            raise self._error("unterminated variable definition", self._define[0])

        self._emit(TokenType.EOF, "", "")
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _emit(self, tt: TokenType, value: str, raw: str, start: Position | None = None) -> Token:
        end = self._current_pos()
        if start is None:
            start = end
        tok = Token(tt, value, raw, Span(start, end))
        self._tokens.append(tok)
        return tok

    def _error(self, message: str, pos: Position | None = None) -> LexError:
        if pos is None:
            pos = self._current_pos()
        return LexError(message, pos, self._source)

    # ------------------------------------------------------------------
    # Normal mode
    # ------------------------------------------------------------------

    def _lex_normal(self) -> None:
        ch = self._peek()

        if ch == "\0":
            raise self._error("NUL character in source")

        if ch in _SINGLE_CHAR_TOKENS:
            start = self._current_pos()
            self._advance()
            self._emit(_SINGLE_CHAR_TOKENS[ch], ch, ch, start)
            return

        if ch == "." and is_ident_start(self._peek(1)):
            self._lex_command()
            return

        if ch == "~" and is_ident_start(self._peek(1)):
            self._lex_variable()
            return

        if ch == "\\":
            self._lex_escape()
            return

        if ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
            self._lex_newlines()
            return

        if self._define is not None and ch in "()":
            self._lex_define_paren()
            return

        if self._source.startswith(_DEFINE, self._pos):
            self._lex_define_start()
            return

        self._lex_text()

    def _lex_command(self) -> None:
        start = self._current_pos()
        self._advance()  # consume dot
        self._emit(TokenType.DOT, ".", ".", start)

        name_start = self._current_pos()
        name = self._read_identifier()
        self._emit(TokenType.IDENTIFIER, name, name, name_start)

    def _lex_variable(self) -> None:
        start = self._current_pos()
        self._advance()  # consume tilde
        name = self._read_identifier()
        self._emit(TokenType.VARIABLE, name, f"~{name}", start)

    def _read_identifier(self) -> str:
        chars = []
        while self._pos < len(self._source) and is_ident_char(self._peek()):
            chars.append(self._advance())
        return "".join(chars)

    def _lex_text(self) -> None:
        start = self._current_pos()
        chars = []
        while self._pos < len(self._source):
            if self._at_text_boundary():
                break
            chars.append(self._advance())
        if chars:
            text = "".join(chars)
            self._emit(TokenType.TEXT, text, text, start)

    def _at_text_boundary(self) -> bool:
        ch = self._peek()
        if ch in _SINGLE_CHAR_TOKENS or ch in "\\\n\0":
            return True
        if ch in ".~" and is_ident_start(self._peek(1)):
            return True
        if ch == "\r" and self._peek(1) == "\n":
            return True
        if self._define is not None and ch in "()":
            return True
        return ch == "#" and self._source.startswith(_DEFINE, self._pos)

    # ------------------------------------------------------------------
    # Escapes
    # ------------------------------------------------------------------

    def _lex_escape(self) -> None:
        start = self._current_pos()
        self._advance()  # consume backslash

        if self._pos >= len(self._source):
            raise self._error("unexpected end of input after '\\'", start)

        ch = self._peek()
        if ch in SPECIAL_CHARS:
            self._advance()
            self._emit(TokenType.ESCAPE, ch, f"\\{ch}", start)
            return

        # Not an escape: the backslash is ordinary text
        self._emit(TokenType.TEXT, "\\", "\\", start)

    # ------------------------------------------------------------------
    # Newlines, paragraph breaks, and comment lines
    # ------------------------------------------------------------------

    def _consume_newline(self) -> str:
        if self._peek() == "\r":
            self._advance()
            self._advance()
            return "\r\n"
        self._advance()
        return "\n"

    def _lex_newlines(self) -> None:
        """Fold one newline into a space; two or more become a paragraph break."""
        start = self._current_pos()
        raw = [self._consume_newline()]
        count = 1

        while True:
            self._skip_comment_lines()
            end = self._blank_line_end()
            if end is None:
                break
            while self._pos < end:
                raw.append(self._advance())
            count += 1

        if count == 1:
            self._emit(TokenType.TEXT, " ", raw[0], start)
        else:
            self._emit(TokenType.PARAGRAPH_BREAK, "\n\n", "".join(raw), start)

    def _blank_line_end(self) -> int | None:
        """Offset just past the next line if it holds only spaces and tabs."""
        i = self._pos
        while i < len(self._source) and self._source[i] in " \t":
            i += 1
        if self._source.startswith("\r\n", i):
            return i + 2
        if i < len(self._source) and self._source[i] == "\n":
            return i + 1
        return None

    def _skip_comment_lines(self) -> None:
        """Drop every line (terminator included) whose first non-blank char is ';'."""
        while True:
            i = self._pos
            while i < len(self._source) and self._source[i] in " \t":
                i += 1
            if i >= len(self._source) or self._source[i] != ";":
                return
            while self._pos < len(self._source) and self._peek() != "\n":
                self._advance()
            if self._pos < len(self._source):
                self._advance()

    # ------------------------------------------------------------------
    # Variable definitions: #define(name)(fragment)
    # ------------------------------------------------------------------

    def _lex_define_start(self) -> None:
        start = self._current_pos()
        if self._define is not None:
            raise self._error("variable definitions cannot be nested", start)

        for _ in _DEFINE:
            self._advance()

        if not is_ident_start(self._peek()):
            raise self._error("expected variable name after '#define('", start)
        name = self._read_identifier()

        if self._peek() != ")" or self._peek(1) != "(":
            raise self._error(f"expected ')(' after variable name '{name}'", start)
        self._advance()
        self._advance()

        raw = self._source[start.offset : self._pos]
        self._emit(TokenType.DEFINE_START, name, raw, start)
        self._define = (start, 0)

    def _lex_define_paren(self) -> None:
        assert self._define is not None
        define_start, depth = self._define
        start = self._current_pos()
        ch = self._advance()

        if ch == "(":
            self._define = (define_start, depth + 1)
            self._emit(TokenType.TEXT, ch, ch, start)
        elif depth > 0:
            self._define = (define_start, depth - 1)
            self._emit(TokenType.TEXT, ch, ch, start)
        else:
            self._define = None
            self._emit(TokenType.DEFINE_END, ch, ch, start)


def tokenize(source: str, filename: str = "input.bur") -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source, filename).tokenize()
