"""Typesetting state: one LIFO stack of values per setting key.

Settings are cumulative and are not scoped by syntactic nesting: a command
pushes a new value, and the literal ``-`` pops back to whatever was in
effect before. The bottom of every stack is the documented default and
can never be popped.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from burro.errors import StateUnderflowError
from burro.tokens import Span

RESET = "-"


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"

    @classmethod
    def parse(cls, text: str) -> Alignment:
        try:
            return cls(text.strip())
        except ValueError:
            choices = ", ".join(a.value for a in cls)
            raise ValueError(f"invalid alignment '{text}' (expected one of: {choices})") from None


# Setting keys
ALIGN = "align"
MARGIN_LEFT = "margin_left"
MARGIN_RIGHT = "margin_right"
MARGIN_TOP = "margin_top"
MARGIN_BOTTOM = "margin_bottom"
PT_SIZE = "pt_size"
LEADING = "leading"
PAR_SPACE = "par_space"
PAR_INDENT = "par_indent"
PAGE_WIDTH = "page_width"
PAGE_HEIGHT = "page_height"
FAMILY = "family"
BOLD = "bold"
ITALIC = "italic"

MARGIN_KEYS = (MARGIN_LEFT, MARGIN_RIGHT, MARGIN_TOP, MARGIN_BOTTOM)

DEFAULTS: dict[str, Any] = {
    ALIGN: Alignment.LEFT,
    MARGIN_LEFT: 72.0,
    MARGIN_RIGHT: 72.0,
    MARGIN_TOP: 72.0,
    MARGIN_BOTTOM: 72.0,
    PT_SIZE: 12.0,
    LEADING: None,  # None: 1.2 x the largest point size on the line
    PAR_SPACE: 0.0,
    PAR_INDENT: 0.0,
    PAGE_WIDTH: 612.0,
    PAGE_HEIGHT: 792.0,
    FAMILY: "times",
    BOLD: False,
    ITALIC: False,
}

Snapshot = dict[str, tuple[Any, ...]]


class TypesettingState:
    """Per-key value stacks, seeded with DEFAULTS."""

    def __init__(self, defaults: dict[str, Any] | None = None) -> None:
        seed = dict(DEFAULTS)
        if defaults:
            seed.update(defaults)
        self._stacks: dict[str, list[Any]] = {key: [value] for key, value in seed.items()}

    def get(self, key: str) -> Any:
        """Return the value currently in effect for key."""
        return self._stack(key)[-1]

    def set(self, key: str, value: Any, span: Span | None = None) -> None:
        """Push value, or pop the top of the stack when value is ``-``."""
        stack = self._stack(key)
        if isinstance(value, str) and value == RESET:
            if len(stack) == 1:
                raise StateUnderflowError(key, span)
            stack.pop()
        else:
            stack.append(value)

    def depth(self, key: str) -> int:
        return len(self._stack(key))

    def snapshot(self, keys: Iterable[str]) -> Snapshot:
        """Copy the full stacks for keys."""
        return {key: tuple(self._stack(key)) for key in keys}

    def restore(self, snapshot: Snapshot) -> None:
        """Replace stacks with the copies taken by ``snapshot``."""
        for key, values in snapshot.items():
            self._stacks[key] = list(values)

    def _stack(self, key: str) -> list[Any]:
        try:
            return self._stacks[key]
        except KeyError:
            raise KeyError(f"unknown setting key: {key}") from None
