"""Layout engine: walks a Document and produces positioned text placements.

The walk is depth-first. Text is split into words (a word may mix
styles), words are set greedily into lines against the current column,
and each line is positioned according to the alignment in effect when it
is set. Baselines are measured down from the top edge of the page.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from burro.ast import Command, Document, Inline, Paragraph, Text
from burro.commands import COMMANDS
from burro.errors import FontResolutionError, LayoutError, LayoutOverflowWarning
from burro.fonts import FontMetrics, FontStyle
from burro.state import (
    ALIGN,
    BOLD,
    FAMILY,
    ITALIC,
    LEADING,
    MARGIN_BOTTOM,
    MARGIN_KEYS,
    MARGIN_LEFT,
    MARGIN_RIGHT,
    MARGIN_TOP,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PAR_INDENT,
    PAR_SPACE,
    PT_SIZE,
    RESET,
    Alignment,
    TypesettingState,
)
from burro.tabs import TabDefinition, TabSubsystem
from burro.tokens import Span
from burro.units import Length

logger = logging.getLogger(__name__)

AUTO_LEADING = 1.2

_EPSILON = 0.01
_WHITESPACE_RE = re.compile(r"(\s+)")
_POSITIVE_KEYS = frozenset({PT_SIZE, PAGE_WIDTH, PAGE_HEIGHT})


@dataclass(frozen=True, slots=True)
class TextPlacement:
    """A run of text at a fixed baseline position; ``page`` indexes Layout.pages."""

    page: int
    x: float
    y: float
    text: str
    font: str
    size: float


@dataclass(frozen=True, slots=True)
class PageGeometry:
    width: float
    height: float
    margin_left: float
    margin_right: float
    margin_top: float
    margin_bottom: float


@dataclass(frozen=True, slots=True)
class Layout:
    placements: tuple[TextPlacement, ...]
    pages: tuple[PageGeometry, ...]
    warnings: tuple[LayoutOverflowWarning, ...]


@dataclass(slots=True)
class _Run:
    text: str
    font: str
    size: float
    width: float


@dataclass(slots=True)
class _Space:
    width: float
    font: str
    size: float


@dataclass(slots=True)
class _Word:
    runs: list[_Run]
    gap: _Space | None = None  # whitespace before the word

    @property
    def width(self) -> float:
        return sum(run.width for run in self.runs)


@dataclass(slots=True)
class _Segment:
    x: float
    text: str
    font: str
    size: float


@dataclass
class LayoutContext:
    """State carried through one layout walk."""

    state: TypesettingState
    tabs: TabSubsystem
    fonts: FontMetrics
    placements: list[TextPlacement] = field(default_factory=list)
    pages: list[PageGeometry] = field(default_factory=list)
    warnings: list[LayoutOverflowWarning] = field(default_factory=list)
    page: int = -1
    y: float = 0.0
    line: list[_Word] = field(default_factory=list)
    word: _Word | None = None
    space: _Space | None = None
    first_line: bool = False
    # (page, y) where the current tab row starts, and the deepest line set in it
    row_top: tuple[int, float] | None = None
    row_bottom: tuple[int, float] | None = None
    span: Span | None = None


class LayoutEngine:
    """Turns parsed documents into Layouts using one font metrics provider."""

    def __init__(self, fonts: FontMetrics, defaults: dict[str, Any] | None = None) -> None:
        self._fonts = fonts
        self._defaults = defaults

    def build(self, doc: Document) -> Layout:
        ctx = LayoutContext(TypesettingState(self._defaults), TabSubsystem(), self._fonts)
        _collect_tabs(doc.children, ctx.tabs)

        for block in doc.children:
            _layout_block(block, ctx)

        _ensure_page(ctx)
        return Layout(tuple(ctx.placements), tuple(ctx.pages), tuple(ctx.warnings))


# ---------------------------------------------------------------------------
# Pass 1: tab and tab list definitions
# ---------------------------------------------------------------------------


def _collect_tabs(nodes: Iterable[Command | Paragraph | Inline], tabs: TabSubsystem) -> None:
    for node in nodes:
        if isinstance(node, Paragraph):
            _collect_tabs(node.body, tabs)
        elif isinstance(node, Command):
            if node.name == "tab" and isinstance(node.value, TabDefinition):
                tabs.define_tab(node.value, node.span)
            elif node.name == "tab_list":
                tabs.define_list(node.value, node.span)
            if node.argument:
                _collect_tabs(node.argument, tabs)


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _layout_block(block: Command | Paragraph, ctx: LayoutContext) -> None:
    body = block.body if isinstance(block, Paragraph) else (block,)
    ctx.first_line = True
    _layout_inline(body, ctx)
    _flush(ctx)
    ctx.first_line = False


def _layout_inline(nodes: Iterable[Inline], ctx: LayoutContext) -> None:
    for node in nodes:
        ctx.span = node.span
        if isinstance(node, Text):
            _layout_text(node.value, ctx)
        else:
            _apply_command(node, ctx)


def _layout_text(value: str, ctx: LayoutContext) -> None:
    for part in _WHITESPACE_RE.split(value):
        if not part:
            continue
        if part.isspace():
            _end_word(ctx)
            # Whitespace at the start of a line is dropped
            if ctx.line:
                font, size = _current_font(ctx)
                ctx.space = _Space(ctx.fonts.width(" ", font, size), font, size)
            continue

        font, size = _current_font(ctx)
        run = _Run(part, font, size, ctx.fonts.width(part, font, size))
        if ctx.word is None:
            ctx.word = _Word([run], ctx.space if ctx.line else None)
            ctx.space = None
        else:
            ctx.word.runs.append(run)


def _apply_command(cmd: Command, ctx: LayoutContext) -> None:
    name = cmd.name
    if COMMANDS[name].block:
        _flush(ctx)

    if name in ("bold", "italic"):
        key = BOLD if name == "bold" else ITALIC
        ctx.state.set(key, True, cmd.span)
        _layout_inline(cmd.argument or (), ctx)
        ctx.state.set(key, RESET, cmd.span)
        ctx.span = cmd.span
        return

    if name == "page_break":
        _ensure_page(ctx)
        _next_page(ctx)
        return

    if name == "tab":
        if isinstance(cmd.value, TabDefinition):
            return  # registered before the walk
        previous = ctx.tabs.select(cmd.value, ctx.state, cmd.span)
        _enter_column(previous, ctx)
        return

    if name == "next_tab":
        _enter_column(ctx.tabs.next(ctx.state, cmd.span), ctx)
        return

    if name == "previous_tab":
        _enter_column(ctx.tabs.previous(ctx.state, cmd.span), ctx)
        return

    if name == "tab_list":
        return

    if name == "load_tabs":
        ctx.tabs.load(cmd.value, ctx.state, cmd.span)
        ctx.row_top = ctx.row_bottom = None
        return

    if name == "quit_tabs":
        ctx.tabs.quit(ctx.state, cmd.span)
        if ctx.row_bottom is not None:
            ctx.page, ctx.y = max(ctx.row_bottom, (ctx.page, ctx.y))
        ctx.row_top = ctx.row_bottom = None
        return

    if name == "margins":
        for key in MARGIN_KEYS:
            _set_value(key, cmd.value, cmd.span, ctx)
        return

    # Every remaining command sets the state key of the same name
    _set_value(name, cmd.value, cmd.span, ctx)


def _set_value(key: str, value: Any, span: Span, ctx: LayoutContext) -> None:
    if isinstance(value, Length):
        current = ctx.state.get(key)
        if current is None:  # auto leading
            current = AUTO_LEADING * ctx.state.get(PT_SIZE)
        value = value.resolve(current)
        if value < 0 or (key in _POSITIVE_KEYS and value == 0):
            raise LayoutError(f"{key} must be positive, got {value:g}pt", span)
    ctx.state.set(key, value, span)


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------


def _enter_column(previous: int | None, ctx: LayoutContext) -> None:
    """Position the cursor for the column just selected."""
    env = ctx.tabs.environment
    assert env is not None and env.cursor is not None
    _ensure_page(ctx)

    if previous is None or ctx.row_top is None:
        ctx.row_top = ctx.row_bottom = (ctx.page, ctx.y)
    elif env.cursor > previous:
        ctx.page, ctx.y = ctx.row_top
    else:
        assert ctx.row_bottom is not None
        ctx.row_top = ctx.row_bottom
        ctx.page, ctx.y = ctx.row_top

    tab = ctx.tabs.current_tab()
    assert tab is not None
    usable = _page_width(ctx) - ctx.state.get(MARGIN_LEFT) - ctx.state.get(MARGIN_RIGHT)
    if tab.indent + tab.length > usable + _EPSILON:
        _warn(f"tab '{tab.name}' extends past the right margin", ctx)


# ---------------------------------------------------------------------------
# Words and lines
# ---------------------------------------------------------------------------


def _end_word(ctx: LayoutContext) -> None:
    word = ctx.word
    if word is None:
        return
    ctx.word = None

    tab = ctx.tabs.current_tab()
    quad = tab.quad if tab is not None else True
    if ctx.line and quad:
        _, width = _column(ctx)
        gap = word.gap.width if word.gap is not None else 0.0
        if _line_width(ctx.line) + gap + word.width > width + _EPSILON:
            _set_line(ctx, final=False)

    if not ctx.line:
        word.gap = None
    ctx.line.append(word)


def _flush(ctx: LayoutContext) -> None:
    """Set whatever is pending as the last line of its paragraph."""
    _end_word(ctx)
    _set_line(ctx, final=True)
    ctx.space = None


def _line_width(words: list[_Word]) -> float:
    total = 0.0
    for i, word in enumerate(words):
        if i > 0 and word.gap is not None:
            total += word.gap.width
        total += word.width
    return total


def _column(ctx: LayoutContext) -> tuple[float, float]:
    """Left edge and width available to the next line."""
    state = ctx.state
    left = state.get(MARGIN_LEFT)
    tab = ctx.tabs.current_tab()
    if tab is not None:
        left += tab.indent
        width = tab.length
    else:
        width = _page_width(ctx) - left - state.get(MARGIN_RIGHT)
    if ctx.first_line:
        indent = state.get(PAR_INDENT)
        left += indent
        width -= indent
    return left, width


def _set_line(ctx: LayoutContext, final: bool) -> None:
    words = ctx.line
    if not words:
        return
    left, width = _column(ctx)
    ctx.line = []
    first = ctx.first_line
    ctx.first_line = False

    baseline = _advance_baseline(ctx, words, first)

    natural = _line_width(words)
    align = ctx.state.get(ALIGN)
    stretch = 0.0
    justified = False
    if align is Alignment.JUSTIFY and not final and len(words) > 1 and natural < width:
        stretch = (width - natural) / (len(words) - 1)
        justified = True
        x = left
    elif align is Alignment.RIGHT:
        x = left + width - natural
    elif align is Alignment.CENTER:
        x = left + (width - natural) / 2
    else:
        x = left

    segments: list[_Segment] = []
    for i, word in enumerate(words):
        joined = False
        if i > 0:
            x += stretch
            if word.gap is not None:
                x += word.gap.width
                prev = segments[-1]
                first_run = word.runs[0]
                if (
                    not justified
                    and (prev.font, prev.size) == (word.gap.font, word.gap.size)
                    and (prev.font, prev.size) == (first_run.font, first_run.size)
                ):
                    prev.text += " "
                    joined = True
        for j, run in enumerate(word.runs):
            prev = segments[-1] if segments else None
            if (
                prev is not None
                and (j > 0 or joined)
                and (prev.font, prev.size) == (run.font, run.size)
            ):
                prev.text += run.text
            else:
                segments.append(_Segment(x, run.text, run.font, run.size))
            x += run.width

    for seg in segments:
        ctx.placements.append(TextPlacement(ctx.page, seg.x, baseline, seg.text, seg.font, seg.size))

    limit = _page_width(ctx) - ctx.state.get(MARGIN_RIGHT)
    if x > limit + _EPSILON:
        _warn("line runs past the right margin", ctx)


def _advance_baseline(ctx: LayoutContext, words: list[_Word], first: bool) -> float:
    """Move the cursor down one line, allocating a page as needed."""
    _ensure_page(ctx)
    size = max(run.size for word in words for run in word.runs)
    leading = ctx.state.get(LEADING)
    if leading is None:
        leading = AUTO_LEADING * size

    # Descenders must stay above the bottom margin
    depth = -min(ctx.fonts.descent(run.font, run.size) for word in words for run in word.runs)

    page = ctx.pages[ctx.page]
    if first and not _at_page_top(ctx):
        ctx.y += ctx.state.get(PAR_SPACE)

    baseline = ctx.y + leading
    if baseline + depth > page.height - page.margin_bottom + _EPSILON and not _at_page_top(ctx):
        _next_page(ctx)
        page = ctx.pages[ctx.page]
        baseline = ctx.y + leading

    # A line that does not fit even on a fresh page is placed anyway
    if baseline + depth > page.height - page.margin_bottom + _EPSILON:
        _warn("line runs past the bottom margin", ctx)

    ctx.y = baseline
    if ctx.row_bottom is not None and ctx.tabs.current_tab() is not None:
        ctx.row_bottom = max(ctx.row_bottom, (ctx.page, ctx.y))
    return baseline


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def _ensure_page(ctx: LayoutContext) -> None:
    if ctx.page < 0:
        _next_page(ctx)


def _next_page(ctx: LayoutContext) -> None:
    ctx.page += 1
    if ctx.page == len(ctx.pages):
        state = ctx.state
        ctx.pages.append(
            PageGeometry(
                width=state.get(PAGE_WIDTH),
                height=state.get(PAGE_HEIGHT),
                margin_left=state.get(MARGIN_LEFT),
                margin_right=state.get(MARGIN_RIGHT),
                margin_top=state.get(MARGIN_TOP),
                margin_bottom=state.get(MARGIN_BOTTOM),
            )
        )
        logger.debug("allocated page %d", ctx.page + 1)
    ctx.y = ctx.pages[ctx.page].margin_top


def _at_page_top(ctx: LayoutContext) -> bool:
    return ctx.y <= ctx.pages[ctx.page].margin_top + _EPSILON


def _page_width(ctx: LayoutContext) -> float:
    if ctx.page < 0:
        return ctx.state.get(PAGE_WIDTH)
    return ctx.pages[ctx.page].width


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _current_font(ctx: LayoutContext) -> tuple[str, float]:
    state = ctx.state
    style = FontStyle.from_flags(state.get(BOLD), state.get(ITALIC))
    try:
        font = ctx.fonts.resolve(state.get(FAMILY), style)
    except FontResolutionError as exc:
        raise FontResolutionError(exc.message, ctx.span) from None
    return font, state.get(PT_SIZE)


def _warn(message: str, ctx: LayoutContext) -> None:
    warning = LayoutOverflowWarning(message, ctx.span, ctx.page)
    ctx.warnings.append(warning)
    logger.warning("%s (page %d)", message, ctx.page + 1)
