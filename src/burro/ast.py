"""AST node types for Burro parsed documents."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from burro.tokens import Span


@dataclass(frozen=True, slots=True)
class Text:
    """Coalesced text content (escapes already resolved)."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Setting:
    """One ``.key[value]`` entry of a brace block."""

    key: str
    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Command:
    """A command invocation: ``.name{settings}[argument]``.

    ``value`` holds the typed payload checked by the parser against the
    command registry (a length, an alignment, a tab definition, ...).
    """

    name: str
    settings: tuple[Setting, ...] | None
    argument: tuple[Inline, ...] | None
    value: Any
    span: Span


Inline = Text | Command


@dataclass(frozen=True, slots=True)
class Paragraph:
    """Run of inline content between paragraph breaks."""

    body: tuple[Inline, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Document:
    """Root document node with the variable table collected while parsing."""

    children: tuple[Command | Paragraph, ...]
    variables: Mapping[str, tuple[Inline, ...]]
    span: Span
