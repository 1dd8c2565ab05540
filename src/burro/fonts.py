"""Font families and metrics backed by reportlab.

Three families are always available, mapped onto the PDF standard-14
fonts. More can be loaded from a TOML font map::

    [families.garamond]
    roman = "fonts/EBGaramond-Regular.ttf"
    bold = "fonts/EBGaramond-Bold.ttf"
    italic = "fonts/EBGaramond-Italic.ttf"
    bold_italic = "fonts/EBGaramond-BoldItalic.ttf"

Paths are relative to the file that names them.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from burro.errors import FontResolutionError

logger = logging.getLogger(__name__)


class FontStyle(Enum):
    ROMAN = "roman"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bold_italic"

    @classmethod
    def from_flags(cls, bold: bool, italic: bool) -> FontStyle:
        if bold and italic:
            return cls.BOLD_ITALIC
        if bold:
            return cls.BOLD
        if italic:
            return cls.ITALIC
        return cls.ROMAN


BUILTIN_FAMILIES: dict[str, dict[FontStyle, str]] = {
    "times": {
        FontStyle.ROMAN: "Times-Roman",
        FontStyle.BOLD: "Times-Bold",
        FontStyle.ITALIC: "Times-Italic",
        FontStyle.BOLD_ITALIC: "Times-BoldItalic",
    },
    "helvetica": {
        FontStyle.ROMAN: "Helvetica",
        FontStyle.BOLD: "Helvetica-Bold",
        FontStyle.ITALIC: "Helvetica-Oblique",
        FontStyle.BOLD_ITALIC: "Helvetica-BoldOblique",
    },
    "courier": {
        FontStyle.ROMAN: "Courier",
        FontStyle.BOLD: "Courier-Bold",
        FontStyle.ITALIC: "Courier-Oblique",
        FontStyle.BOLD_ITALIC: "Courier-BoldOblique",
    },
}


class FontMetrics(Protocol):
    """What the layout engine needs to know about fonts."""

    def resolve(self, family: str, style: FontStyle) -> str: ...

    def width(self, text: str, font: str, size: float) -> float: ...

    def descent(self, font: str, size: float) -> float: ...


class FontMap:
    """Family name -> style -> registered reportlab font name."""

    def __init__(self) -> None:
        self._families: dict[str, dict[FontStyle, str]] = {
            name: dict(styles) for name, styles in BUILTIN_FAMILIES.items()
        }

    @classmethod
    def from_config(cls, config: Mapping[str, Any], base_dir: Path) -> FontMap:
        """Build a map from the ``families`` table of a parsed config."""
        fonts = cls()
        families = config.get("families", {})
        if not isinstance(families, Mapping):
            raise FontResolutionError("'families' must be a table of font families")
        for name, paths in families.items():
            if not isinstance(paths, Mapping):
                raise FontResolutionError(f"family '{name}' must be a table of style = path")
            fonts.register_family(str(name), paths, base_dir)
        return fonts

    @classmethod
    def from_toml(cls, path: Path) -> FontMap:
        try:
            with open(path, "rb") as f:
                config = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise FontResolutionError(f"cannot read font map {path}: {exc}") from exc
        return cls.from_config(config, path.parent)

    def register_family(self, name: str, paths: Mapping[str, Any], base_dir: Path) -> None:
        """Register TrueType files for a family, replacing any earlier styles."""
        styles: dict[FontStyle, str] = {}
        for key, raw in paths.items():
            try:
                style = FontStyle(key)
            except ValueError:
                raise FontResolutionError(
                    f"unknown style '{key}' in family '{name}' "
                    "(expected roman, bold, italic or bold_italic)"
                ) from None
            if not isinstance(raw, str):
                raise FontResolutionError(f"font path for {name}.{key} must be a string")

            font_path = base_dir / raw
            font_name = f"{name}-{style.value}"
            try:
                pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
            except (OSError, TTFError) as exc:
                raise FontResolutionError(f"cannot load font {font_path}: {exc}") from exc
            logger.debug("registered %s from %s", font_name, font_path)
            styles[style] = font_name

        self._families[name] = styles

    @property
    def families(self) -> list[str]:
        return sorted(self._families)

    def resolve(self, family: str, style: FontStyle) -> str:
        styles = self._families.get(family)
        if styles is None:
            raise FontResolutionError(f"unknown font family: {family}")
        font = styles.get(style)
        if font is None:
            raise FontResolutionError(f"family '{family}' has no {style.value} font")
        return font

    def width(self, text: str, font: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, font, size)

    def descent(self, font: str, size: float) -> float:
        """Distance below the baseline, as a negative number."""
        _, descent = pdfmetrics.getAscentDescent(font, size)
        return descent
