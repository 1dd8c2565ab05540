"""Burro typesetting language compiler."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from burro.fonts import FontMetrics
    from burro.layout import Layout

__version__ = "0.1.0"


def compile(
    source: str,
    filename: str = "input.bur",
    fonts: FontMetrics | None = None,
) -> Layout:
    """Parse and lay out Burro source, returning the positioned text."""
    from burro.fonts import FontMap
    from burro.layout import LayoutEngine
    from burro.parser import parse

    doc = parse(source, filename)
    return LayoutEngine(fonts if fonts is not None else FontMap()).build(doc)
