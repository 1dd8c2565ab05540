"""Command registry: the closed set of commands and their typed payloads."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from burro.state import RESET, Alignment
from burro.tabs import TabDefinition, TabList
from burro.units import parse_length

# Alias map: alternate name -> canonical name
ALIASES: dict[str, str] = {
    "b": "bold",
    "i": "italic",
}


def resolve_name(name: str) -> str:
    """Resolve an alias to its canonical name."""
    return ALIASES.get(name, name)


class ArgKind(Enum):
    NONE = auto()  # bare directive
    CONTENT = auto()  # document fragment, bracketed or inline
    LENGTH = auto()
    ALIGN = auto()
    NAME = auto()


@dataclass(frozen=True, slots=True)
class CommandDef:
    """Definition of a command.

    ``settings`` lists the keys a brace block may carry (None: no brace
    block allowed); ``repeatable`` keys may appear more than once.
    ``block`` commands end the line being set before they take effect.
    """

    name: str
    argument: ArgKind
    settings: frozenset[str] | None = None
    repeatable: frozenset[str] = frozenset()
    brace_required: bool = False
    resettable: bool = False
    block: bool = False


def _make_commands() -> dict[str, CommandDef]:
    defs: dict[str, CommandDef] = {}

    def d(name: str, argument: ArgKind = ArgKind.NONE, **kwargs: Any) -> None:
        defs[name] = CommandDef(name, argument, **kwargs)

    # Block-level settings
    d("align", ArgKind.ALIGN, resettable=True, block=True)
    d("margins", ArgKind.LENGTH, resettable=True, block=True)
    d("margin_left", ArgKind.LENGTH, resettable=True, block=True)
    d("margin_right", ArgKind.LENGTH, resettable=True, block=True)
    d("margin_top", ArgKind.LENGTH, resettable=True, block=True)
    d("margin_bottom", ArgKind.LENGTH, resettable=True, block=True)
    d("leading", ArgKind.LENGTH, resettable=True, block=True)
    d("par_space", ArgKind.LENGTH, resettable=True, block=True)
    d("par_indent", ArgKind.LENGTH, resettable=True, block=True)
    d("page_width", ArgKind.LENGTH, resettable=True, block=True)
    d("page_height", ArgKind.LENGTH, resettable=True, block=True)
    d("page_break", block=True)

    # Inline style
    d("pt_size", ArgKind.LENGTH, resettable=True)
    d("family", ArgKind.NAME, resettable=True)
    d("bold", ArgKind.CONTENT)
    d("italic", ArgKind.CONTENT)

    # Tabs
    d(
        "tab",
        ArgKind.NAME,
        settings=frozenset({"indent", "direction", "length", "quad"}),
        block=True,
    )
    d(
        "tab_list",
        ArgKind.NAME,
        settings=frozenset({"tab"}),
        repeatable=frozenset({"tab"}),
        brace_required=True,
    )
    d("load_tabs", ArgKind.NAME, block=True)
    d("next_tab", block=True)
    d("previous_tab", block=True)
    d("quit_tabs", block=True)

    return defs


COMMANDS: dict[str, CommandDef] = _make_commands()


# ---------------------------------------------------------------------------
# Payload construction: raises ValueError, the parser attaches the span
# ---------------------------------------------------------------------------


def build_payload(defn: CommandDef, text: str | None, settings: dict[str, list[str]] | None) -> Any:
    """Convert a command's bracket text and brace settings into its typed value."""
    if defn.argument in (ArgKind.NONE, ArgKind.CONTENT):
        return None
    assert text is not None
    text = text.strip()

    if text == RESET:
        if not defn.resettable or settings is not None:
            raise ValueError(f".{defn.name} cannot be reset with '-'")
        return RESET

    if defn.name == "tab" and settings is not None:
        return _tab_definition(_require_name(text), settings)
    if defn.name == "tab_list":
        assert settings is not None
        return _tab_list(_require_name(text), settings)

    if defn.argument is ArgKind.LENGTH:
        return parse_length(text)
    if defn.argument is ArgKind.ALIGN:
        return Alignment.parse(text)
    return _require_name(text)


def parse_bool(text: str) -> bool:
    value = text.strip()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"invalid boolean '{text}' (expected true or false)")


def _require_name(text: str) -> str:
    if not text or any(ch.isspace() for ch in text):
        raise ValueError(f"invalid name '{text}'")
    return text


def _absolute(key: str, text: str) -> float:
    length = parse_length(text)
    if length.relative:
        raise ValueError(f"{key} must be an absolute length, got '{text}'")
    return length.points


def _tab_definition(name: str, settings: dict[str, list[str]]) -> TabDefinition:
    if "length" not in settings:
        raise ValueError(f"tab '{name}' needs a .length setting")
    indent = _absolute("indent", settings["indent"][0]) if "indent" in settings else 0.0
    length = _absolute("length", settings["length"][0])
    if length <= 0:
        raise ValueError(f"tab '{name}' must have a positive length")
    direction = Alignment.parse(settings["direction"][0]) if "direction" in settings else Alignment.LEFT
    quad = parse_bool(settings["quad"][0]) if "quad" in settings else True
    return TabDefinition(name, indent, direction, length, quad)


def _tab_list(name: str, settings: dict[str, list[str]]) -> TabList:
    names = [_require_name(n.strip()) for n in settings.get("tab", [])]
    if not names:
        raise ValueError(f"tab list '{name}' needs at least one .tab entry")
    seen: set[str] = set()
    for n in names:
        if n in seen:
            raise ValueError(f"tab '{n}' listed twice")
        seen.add(n)
    return TabList(name, tuple(names))
