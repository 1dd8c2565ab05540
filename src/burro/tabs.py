"""Tab subsystem: named column definitions, tab lists, and the active tab environment.

The subsystem is a two-state machine. ``load`` moves from Inactive to
Active and remembers the alignment and margin stacks; ``select``,
``next`` and ``previous`` move the cursor inside the active list;
``quit`` restores the remembered stacks and goes back to Inactive.
Environments never nest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from burro.errors import (
    DuplicateDefinitionError,
    TabEnvironmentError,
    TabNavigationOutOfRangeError,
    UndefinedTabError,
    UndefinedTabListError,
)
from burro.state import ALIGN, MARGIN_KEYS, Alignment, Snapshot, TypesettingState
from burro.tokens import Span

logger = logging.getLogger(__name__)

_SAVED_KEYS = (ALIGN, *MARGIN_KEYS)


@dataclass(frozen=True, slots=True)
class TabDefinition:
    """A column: offset from the left margin, width, and text direction."""

    name: str
    indent: float
    direction: Alignment
    length: float
    quad: bool = True


@dataclass(frozen=True, slots=True)
class TabList:
    """Ordered tab names usable together; positions are 1-based."""

    name: str
    tabs: tuple[str, ...]

    def position(self, tab_name: str) -> int | None:
        try:
            return self.tabs.index(tab_name) + 1
        except ValueError:
            return None


@dataclass
class TabEnvironment:
    """The active list, the cursor inside it, and the state saved at load time."""

    tab_list: TabList
    cursor: int | None
    saved_state: Snapshot


class TabSubsystem:
    """Tab and tab-list registry plus the (single) active environment."""

    def __init__(self) -> None:
        self._tabs: dict[str, TabDefinition] = {}
        self._lists: dict[str, TabList] = {}
        self.environment: TabEnvironment | None = None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def define_tab(self, tab: TabDefinition, span: Span | None = None) -> None:
        if tab.name in self._tabs:
            raise DuplicateDefinitionError("tab", tab.name, span)
        self._tabs[tab.name] = tab

    def define_list(self, tab_list: TabList, span: Span | None = None) -> None:
        if tab_list.name in self._lists:
            raise DuplicateDefinitionError("tab list", tab_list.name, span)
        self._lists[tab_list.name] = tab_list

    def tab(self, name: str) -> TabDefinition | None:
        return self._tabs.get(name)

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.environment is not None

    def current_tab(self) -> TabDefinition | None:
        """The tab under the cursor, or None outside a column."""
        env = self.environment
        if env is None or env.cursor is None:
            return None
        return self._tabs[env.tab_list.tabs[env.cursor - 1]]

    def load(self, list_name: str, state: TypesettingState, span: Span | None = None) -> None:
        if self.environment is not None:
            raise TabEnvironmentError(
                f"cannot load tab list '{list_name}' while "
                f"'{self.environment.tab_list.name}' is active",
                span,
            )
        tab_list = self._lists.get(list_name)
        if tab_list is None:
            raise UndefinedTabListError(list_name, span)
        for name in tab_list.tabs:
            if name not in self._tabs:
                raise UndefinedTabError(name, span)

        self.environment = TabEnvironment(tab_list, None, state.snapshot(_SAVED_KEYS))
        logger.debug("loaded tab list %r", list_name)

    def select(self, tab_name: str, state: TypesettingState, span: Span | None = None) -> int | None:
        """Move the cursor to tab_name; returns the previous cursor position."""
        env = self._require(span, f"tab '{tab_name}'")
        position = env.tab_list.position(tab_name)
        if position is None:
            if tab_name in self._tabs:
                raise UndefinedTabError(tab_name, span, list_name=env.tab_list.name)
            raise UndefinedTabError(tab_name, span)
        return self._move(env, position, state, span)

    def next(self, state: TypesettingState, span: Span | None = None) -> int | None:
        env = self._require(span, "next_tab")
        position = 1 if env.cursor is None else env.cursor + 1
        if position > len(env.tab_list.tabs):
            raise TabNavigationOutOfRangeError(
                f"next_tab past the last tab of '{env.tab_list.name}'", span
            )
        return self._move(env, position, state, span)

    def previous(self, state: TypesettingState, span: Span | None = None) -> int | None:
        env = self._require(span, "previous_tab")
        if env.cursor is None or env.cursor == 1:
            raise TabNavigationOutOfRangeError(
                f"previous_tab before the first tab of '{env.tab_list.name}'", span
            )
        return self._move(env, env.cursor - 1, state, span)

    def quit(self, state: TypesettingState, span: Span | None = None) -> None:
        env = self._require(span, "quit_tabs")
        state.restore(env.saved_state)
        self.environment = None
        logger.debug("quit tab list %r", env.tab_list.name)

    def _move(
        self,
        env: TabEnvironment,
        position: int,
        state: TypesettingState,
        span: Span | None,
    ) -> int | None:
        previous = env.cursor
        tab = self._tabs[env.tab_list.tabs[position - 1]]
        state.set(ALIGN, tab.direction, span)
        env.cursor = position
        return previous

    def _require(self, span: Span | None, what: str) -> TabEnvironment:
        if self.environment is None:
            raise TabEnvironmentError(f"{what} used without a loaded tab list", span)
        return self.environment
