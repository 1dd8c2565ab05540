"""PDF emission: draws a Layout with a reportlab canvas."""

from __future__ import annotations

import logging
from pathlib import Path

from reportlab.pdfgen import canvas

from burro import __version__
from burro.layout import Layout

logger = logging.getLogger(__name__)


def write_pdf(layout: Layout, path: Path | str, title: str | None = None) -> None:
    """Write every page of layout to path.

    Placements carry baselines measured from the top of the page; PDF
    measures from the bottom, so ``y`` is flipped against the page height.
    Fonts are looked up by their registered reportlab names, so the font
    map used for layout must have been built first.
    """
    pdf = canvas.Canvas(str(path), pageCompression=1)
    pdf.setCreator(f"burro {__version__}")
    if title:
        pdf.setTitle(title)

    by_page: dict[int, list] = {}
    for placement in layout.placements:
        by_page.setdefault(placement.page, []).append(placement)

    for index, geometry in enumerate(layout.pages):
        pdf.setPageSize((geometry.width, geometry.height))
        for placement in by_page.get(index, ()):
            pdf.setFont(placement.font, placement.size)
            pdf.drawString(placement.x, geometry.height - placement.y, placement.text)
        pdf.showPage()

    pdf.save()
    logger.debug("wrote %d page(s) to %s", len(layout.pages), path)
