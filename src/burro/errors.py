"""Error types with formatted source context."""

from __future__ import annotations

from burro.tokens import Position, Span


def _render(message: str, span: Span | None, source: str, filename: str, label: str) -> str:
    """Render a diagnostic with a gutter, the offending source line, and carets."""
    if span is None:
        return f"{label}: {message}"

    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    # Build the source line (strip trailing newline for display)
    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline the full span when on one line, otherwise to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"{label}: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class BurroError(Exception):
    """Base class for every fatal compile error.

    Errors raised after parsing (during layout) usually do not have the
    source text at hand; callers that do can pass it to ``format``.
    """

    def __init__(self, message: str, span: Span | None = None, source: str = "") -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.bur", source: str | None = None) -> str:
        text = self.source if source is None else source
        return _render(self.message, self.span, text, filename, "error")


class LexError(BurroError):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.position = position
        super().__init__(message, Span(position, position), source)


class ParseError(BurroError):
    """Raised on the first parse error, with span and source context."""

    def __init__(self, message: str, span: Span, source: str = "") -> None:
        super().__init__(message, span, source)


class UndefinedVariableError(BurroError):
    """A ``~name`` reference with no matching ``#define``."""

    def __init__(self, name: str, span: Span, source: str = "") -> None:
        self.name = name
        super().__init__(f"undefined variable: ~{name}", span, source)


class DuplicateDefinitionError(BurroError):
    """A variable, tab, or tab list name defined more than once."""

    def __init__(self, kind: str, name: str, span: Span | None, source: str = "") -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"duplicate {kind} definition: {name}", span, source)


class LayoutError(BurroError):
    """Fatal error raised while walking the document tree."""


class StateUnderflowError(LayoutError):
    """A ``-`` reset with no earlier value left to restore."""

    def __init__(self, key: str, span: Span | None = None) -> None:
        self.key = key
        super().__init__(f"reset of '{key}' without any previous value", span)


class UndefinedTabError(LayoutError):
    def __init__(self, name: str, span: Span | None = None, list_name: str | None = None) -> None:
        self.name = name
        self.list_name = list_name
        if list_name is None:
            message = f"undefined tab: {name}"
        else:
            message = f"tab '{name}' is not part of tab list '{list_name}'"
        super().__init__(message, span)


class UndefinedTabListError(LayoutError):
    def __init__(self, name: str, span: Span | None = None) -> None:
        self.name = name
        super().__init__(f"undefined tab list: {name}", span)


class TabNavigationOutOfRangeError(LayoutError):
    def __init__(self, message: str, span: Span | None = None) -> None:
        super().__init__(message, span)


class TabEnvironmentError(LayoutError):
    """Tab command used in the wrong environment state (none loaded, or nested)."""


class FontResolutionError(BurroError):
    """A family/style with no usable font."""

    def __init__(self, message: str, span: Span | None = None) -> None:
        super().__init__(message, span)


class LayoutOverflowWarning(UserWarning):
    """Non-fatal: text was placed past the usable width of the page."""

    def __init__(self, message: str, span: Span | None = None, page: int = 0) -> None:
        self.message = message
        self.span = span
        self.page = page
        super().__init__(message)

    def format(self, filename: str = "input.bur", source: str = "") -> str:
        return _render(self.message, self.span, source, filename, "warning")
