"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from burro.ast import Command, Document, Paragraph, Text
from burro.errors import FontResolutionError
from burro.fonts import BUILTIN_FAMILIES, FontStyle
from burro.layout import Layout, LayoutEngine, TextPlacement
from burro.lexer import tokenize
from burro.parser import parse
from burro.tokens import Token, TokenType


class FixedMetrics:
    """Every glyph is half the point size wide; keeps layout arithmetic exact."""

    def resolve(self, family: str, style: FontStyle) -> str:
        if family not in BUILTIN_FAMILIES:
            raise FontResolutionError(f"unknown font family: {family}")
        return f"{family}-{style.value}"

    def width(self, text: str, font: str, size: float) -> float:
        return len(text) * size / 2

    def descent(self, font: str, size: float) -> float:
        return -size * 0.2


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        # Strip trailing EOF for convenience
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns a Document."""

    def _parse(source: str, filename: str = "test.bur") -> Document:
        return parse(source, filename)

    return _parse


@pytest.fixture
def metrics() -> FixedMetrics:
    return FixedMetrics()


@pytest.fixture
def typeset(metrics):
    """Return a helper that parses and lays out source with FixedMetrics."""

    def _typeset(source: str) -> Layout:
        return LayoutEngine(metrics).build(parse(source, "test.bur"))

    return _typeset


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def find_tokens(tokens: list[Token], tt: TokenType) -> list[Token]:
    """Return all tokens of the given type."""
    return [t for t in tokens if t.type == tt]


def assert_command(node: object, name: str, has_argument: bool | None = None) -> Command:
    """Assert basic properties of a Command node and return it."""
    assert isinstance(node, Command), f"Expected Command, got {type(node).__name__}"
    assert node.name == name, f"Expected name '{name}', got '{node.name}'"
    if has_argument is not None:
        assert (node.argument is not None) == has_argument
    return node


def body_text(node: Command | Paragraph) -> str:
    """Extract concatenated text from a paragraph body or command argument."""
    if isinstance(node, Paragraph):
        children = node.body
    elif node.argument is not None:
        children = node.argument
    else:
        raise TypeError(f"Cannot extract body text from .{node.name}")
    return "".join(c.value for c in children if isinstance(c, Text))


def texts(layout: Layout) -> list[str]:
    return [p.text for p in layout.placements]


def placement(layout: Layout, text: str) -> TextPlacement:
    """Return the single placement whose text is *text*."""
    found = [p for p in layout.placements if p.text == text]
    assert len(found) == 1, f"Expected one placement {text!r}, got {texts(layout)}"
    return found[0]
