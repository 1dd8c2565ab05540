"""Burro parser: converts a token stream into a Document tree and variable table."""

from __future__ import annotations

from types import MappingProxyType

from burro.ast import Command, Document, Inline, Paragraph, Setting, Text
from burro.commands import COMMANDS, ArgKind, CommandDef, build_payload, resolve_name
from burro.errors import DuplicateDefinitionError, ParseError, UndefinedVariableError
from burro.lexer import tokenize
from burro.tokens import Position, Span, Token, TokenType


class Parser:
    """Recursive descent parser for Burro token streams.

    Parsing runs in two passes: the first lifts every ``#define`` fragment
    out of the stream into the variable table, so ``~name`` can refer to a
    definition anywhere in the source; the second builds the tree.
    """

    def __init__(self, tokens: list[Token], source: str, filename: str) -> None:
        self._tokens = tokens
        self._source = source
        self._filename = filename
        self._pos = 0
        self._bracket_depth = 0
        # name -> (DEFINE_START token, body tokens, DEFINE_END token)
        self._definitions: dict[str, tuple[Token, list[Token], Token]] = {}
        self._variables: dict[str, tuple[Inline, ...]] = {}
        self._resolving: list[str] = []

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _at_eof(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, tt: TokenType, message: str) -> Token:
        tok = self._peek()
        if tok.type != tt:
            raise self._error(message, tok.span)
        return self._advance()

    def _prev_end(self) -> Position:
        """End position of the previously consumed token."""
        if self._pos > 0:
            return self._tokens[self._pos - 1].span.end
        return self._tokens[0].span.start

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self) -> Document:
        start = self._peek().span.start
        self._collect_definitions()
        for name, (define_tok, _, _) in self._definitions.items():
            self._resolve_variable(name, define_tok.span)

        children: list[Command | Paragraph] = []
        while not self._at_eof():
            if self._at(TokenType.PARAGRAPH_BREAK):
                self._advance()
                continue
            block = self._parse_block()
            if block is not None:
                children.append(block)

        end = self._peek().span.end
        variables = MappingProxyType(dict(self._variables))
        return Document(tuple(children), variables, Span(start, end))

    def _parse_block(self) -> Command | Paragraph | None:
        start = self._peek().span.start
        body = _coalesce_text(self._parse_fragment(_STOP_PARAGRAPH_EOF))

        content = [n for n in body if not (isinstance(n, Text) and not n.value.strip())]
        if not content:
            return None
        # A paragraph holding nothing but one command is a command block
        if len(content) == 1 and isinstance(content[0], Command):
            return content[0]

        end = self._prev_end()
        return Paragraph(tuple(body), Span(start, end))

    # ------------------------------------------------------------------
    # Pass 1: variable definitions
    # ------------------------------------------------------------------

    def _collect_definitions(self) -> None:
        """Lift #define fragments out of the token stream."""
        remaining: list[Token] = []
        i = 0
        while i < len(self._tokens):
            tok = self._tokens[i]
            if tok.type != TokenType.DEFINE_START:
                remaining.append(tok)
                i += 1
                continue

            # The lexer guarantees a matching DEFINE_END before EOF
            j = i + 1
            while self._tokens[j].type != TokenType.DEFINE_END:
                j += 1
            if tok.value in self._definitions:
                raise DuplicateDefinitionError("variable", tok.value, tok.span, self._source)
            self._definitions[tok.value] = (tok, self._tokens[i + 1 : j], self._tokens[j])
            i = j + 1

        self._tokens = remaining
        self._pos = 0

    def _resolve_variable(self, name: str, span: Span) -> tuple[Inline, ...]:
        """Return the parsed fragment for name, parsing its definition on first use."""
        if name in self._variables:
            return self._variables[name]
        if name not in self._definitions:
            raise UndefinedVariableError(name, span, self._source)
        if name in self._resolving:
            chain = " -> ".join(f"~{n}" for n in (*self._resolving, name))
            raise self._error(f"recursive variable definition: {chain}", span)

        _, body, end_tok = self._definitions[name]
        saved = (self._tokens, self._pos, self._bracket_depth)
        self._tokens = [*body, Token(TokenType.EOF, "", "", end_tok.span)]
        self._pos = 0
        self._bracket_depth = 0
        self._resolving.append(name)
        try:
            fragment = tuple(_coalesce_text(self._parse_fragment(_STOP_EOF)))
        finally:
            self._resolving.pop()
            self._tokens, self._pos, self._bracket_depth = saved

        self._variables[name] = fragment
        return fragment

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def _parse_fragment(self, stop: frozenset[TokenType]) -> list[Inline]:
        result: list[Inline] = []
        text_parts: list[str] = []
        text_start: Position | None = None
        text_end: Position | None = None

        def flush() -> None:
            nonlocal text_start, text_end
            if text_parts:
                value = "".join(text_parts)
                assert text_start is not None
                assert text_end is not None
                result.append(Text(value, Span(text_start, text_end)))
                text_parts.clear()
                text_start = None
                text_end = None

        while True:
            tok = self._peek()

            if tok.type in stop:
                break

            if tok.type in (TokenType.TEXT, TokenType.ESCAPE):
                if text_start is None:
                    text_start = tok.span.start
                text_parts.append(tok.value)
                text_end = tok.span.end
                self._advance()

            elif tok.type == TokenType.DOT:
                flush()
                result.append(self._parse_command())

            elif tok.type == TokenType.VARIABLE:
                flush()
                self._advance()
                result.extend(self._resolve_variable(tok.value, tok.span))

            elif tok.type == TokenType.LBRACKET:
                raise self._error("bare '[' in text (use \\[ for a literal bracket)")

            elif tok.type == TokenType.RBRACKET:
                raise self._error("unmatched ']' (use \\] for a literal bracket)")

            elif tok.type == TokenType.LBRACE:
                raise self._error("'{' block must follow a command name (use \\{ for a literal brace)")

            elif tok.type == TokenType.RBRACE:
                raise self._error("unmatched '}' (use \\} for a literal brace)")

            elif tok.type == TokenType.PIPE:
                raise self._error("'|' outside an inline argument (use \\| for a literal bar)")

            elif tok.type == TokenType.PARAGRAPH_BREAK:
                raise self._error("paragraph break inside a variable definition")

            else:
                break

        flush()
        return result

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _parse_command(self) -> Command:
        dot = self._advance()  # consume DOT
        name_tok = self._expect(TokenType.IDENTIFIER, "expected command name after '.'")
        name = resolve_name(name_tok.value)
        head = Span(dot.span.start, name_tok.span.end)

        defn = COMMANDS.get(name)
        if defn is None:
            raise self._error(f"unknown command: .{name_tok.value}", head)

        settings: tuple[Setting, ...] | None = None
        if self._at(TokenType.LBRACE):
            settings = self._parse_brace_block(defn, head)
        elif defn.brace_required:
            raise self._error(f".{name} requires a '{{...}}' block", head)

        argument: tuple[Inline, ...] | None = None
        if self._at(TokenType.LBRACKET):
            if defn.argument == ArgKind.NONE:
                raise self._error(f".{name} does not take an argument", self._peek().span)
            argument = self._parse_bracket_argument(defn, head)
        elif defn.argument == ArgKind.CONTENT:
            argument = self._parse_inline_argument()
        elif defn.argument != ArgKind.NONE:
            raise self._error(f".{name} requires a '[...]' argument", head)

        span = Span(dot.span.start, self._prev_end())

        text: str | None = None
        if defn.argument not in (ArgKind.NONE, ArgKind.CONTENT):
            assert argument is not None
            text = self._plain_text(argument, f".{name}", span)

        grouped: dict[str, list[str]] | None = None
        if settings is not None:
            grouped = {}
            for setting in settings:
                grouped.setdefault(setting.key, []).append(setting.value)

        try:
            value = build_payload(defn, text, grouped)
        except ValueError as exc:
            raise self._error(str(exc), span) from None

        return Command(name, settings, argument, value, span)

    def _parse_bracket_argument(self, defn: CommandDef, head: Span) -> tuple[Inline, ...]:
        open_tok = self._advance()  # consume LBRACKET
        self._bracket_depth += 1
        children = self._parse_fragment(_STOP_RBRACKET)
        self._bracket_depth -= 1

        if not self._at(TokenType.RBRACKET):
            raise self._error(
                f"unclosed '[' for .{defn.name}", Span(head.start, open_tok.span.end)
            )
        self._advance()
        return tuple(_coalesce_text(children))

    def _parse_inline_argument(self) -> tuple[Inline, ...]:
        """Content up to '|' (consumed), a paragraph break, or an enclosing ']'."""
        tok = self._peek()
        if tok.type == TokenType.TEXT and tok.value[:1] in (" ", "\t"):
            # One whitespace character separates the name from the content
            if len(tok.value) == 1:
                self._advance()
            else:
                start = Position(tok.span.start.line, tok.span.start.column + 1, tok.span.start.offset + 1)
                self._tokens[self._pos] = Token(
                    TokenType.TEXT, tok.value[1:], tok.raw[1:], Span(start, tok.span.end)
                )

        stop = _STOP_INLINE_RBRACKET if self._bracket_depth > 0 else _STOP_INLINE
        children = self._parse_fragment(stop)
        if self._at(TokenType.PIPE):
            self._advance()
        return tuple(_coalesce_text(children))

    def _parse_brace_block(self, defn: CommandDef, head: Span) -> tuple[Setting, ...]:
        open_tok = self._advance()  # consume LBRACE
        if defn.settings is None:
            raise self._error(f".{defn.name} does not take a '{{...}}' block", open_tok.span)

        settings: list[Setting] = []
        seen: set[str] = set()
        while True:
            tok = self._peek()

            if tok.type == TokenType.RBRACE:
                self._advance()
                break

            if tok.type == TokenType.PARAGRAPH_BREAK or (
                tok.type == TokenType.TEXT and not tok.value.strip()
            ):
                self._advance()
                continue

            if tok.type == TokenType.EOF:
                raise self._error(
                    f"unclosed '{{' for .{defn.name}", Span(head.start, open_tok.span.end)
                )

            if tok.type != TokenType.DOT:
                raise self._error("expected '.setting[value]' inside '{...}'", tok.span)

            setting = self._parse_setting()
            if setting.key not in defn.settings:
                raise self._error(f"unknown setting '.{setting.key}' for .{defn.name}", setting.span)
            if setting.key in seen and setting.key not in defn.repeatable:
                raise self._error(f"repeated setting '.{setting.key}' for .{defn.name}", setting.span)
            seen.add(setting.key)
            settings.append(setting)

        return tuple(settings)

    def _parse_setting(self) -> Setting:
        dot = self._advance()  # consume DOT
        key_tok = self._expect(TokenType.IDENTIFIER, "expected setting name after '.'")
        open_tok = self._expect(TokenType.LBRACKET, f"expected '[' after setting '.{key_tok.value}'")

        self._bracket_depth += 1
        children = self._parse_fragment(_STOP_RBRACKET)
        self._bracket_depth -= 1

        if not self._at(TokenType.RBRACKET):
            raise self._error(
                f"unclosed '[' for setting '.{key_tok.value}'",
                Span(dot.span.start, open_tok.span.end),
            )
        self._advance()

        span = Span(dot.span.start, self._prev_end())
        value = self._plain_text(tuple(children), f"setting '.{key_tok.value}'", span)
        return Setting(key_tok.value, value, span)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _plain_text(self, fragment: tuple[Inline, ...] | list[Inline], what: str, span: Span) -> str:
        parts: list[str] = []
        for node in fragment:
            if not isinstance(node, Text):
                raise self._error(f"{what} expects plain text, found .{node.name}", node.span)
            parts.append(node.value)
        return "".join(parts)

    def _error(self, message: str, span: Span | None = None) -> ParseError:
        if span is None:
            span = self._peek().span
        return ParseError(message, span, self._source)


# Module-level constants
_STOP_PARAGRAPH_EOF: frozenset[TokenType] = frozenset({TokenType.PARAGRAPH_BREAK, TokenType.EOF})
_STOP_RBRACKET: frozenset[TokenType] = frozenset(
    {TokenType.RBRACKET, TokenType.PARAGRAPH_BREAK, TokenType.EOF}
)
_STOP_INLINE: frozenset[TokenType] = frozenset(
    {TokenType.PIPE, TokenType.PARAGRAPH_BREAK, TokenType.EOF}
)
_STOP_INLINE_RBRACKET: frozenset[TokenType] = frozenset(
    {TokenType.PIPE, TokenType.RBRACKET, TokenType.PARAGRAPH_BREAK, TokenType.EOF}
)
_STOP_EOF: frozenset[TokenType] = frozenset({TokenType.EOF})


def _coalesce_text(nodes: list[Inline]) -> list[Inline]:
    """Coalesce adjacent Text nodes into single nodes."""
    if not nodes:
        return nodes
    result: list[Inline] = []
    for node in nodes:
        if isinstance(node, Text) and result and isinstance(result[-1], Text):
            prev = result[-1]
            result[-1] = Text(prev.value + node.value, Span(prev.span.start, node.span.end))
        else:
            result.append(node)
    return result


def parse(source: str, filename: str = "input.bur") -> Document:
    """Convenience function: parse source text and return a Document."""
    tokens = tokenize(source, filename)
    return Parser(tokens, source, filename).parse()
