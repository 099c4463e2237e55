"""Footer stamping, run once after all blocks have been placed."""

from __future__ import annotations

import logging

from material2pdf.render.fonts import FontSet
from material2pdf.render.page_builder import Color, PageBuilder

logger = logging.getLogger(__name__)

FOOTER_RULE_OFFSET = 18
FOOTER_TEXT_OFFSET = 10
FOOTER_TITLE_LIMIT = 40
FOOTER_COLOR: Color = (120, 120, 120)
FOOTER_RULE_COLOR: Color = (200, 200, 200)


def footer_title(title: str) -> str:
    if len(title) <= FOOTER_TITLE_LIMIT:
        return title
    return title[:FOOTER_TITLE_LIMIT] + "..."


def stamp_footers(
    builder: PageBuilder, title: str, fonts: FontSet | None = None, margin: float = 20.0
) -> int:
    """Draw a rule, ``Page X of N`` and the truncated title on every page.

    Must run after rendering finished: ``N`` is the final page count. The
    builder is left on its last page. Returns the number of pages stamped.
    """
    fonts = fonts or FontSet()
    total = builder.page_count
    label = fonts.normalize(footer_title(title))
    rule_y = builder.page_height - FOOTER_RULE_OFFSET
    text_y = builder.page_height - FOOTER_TEXT_OFFSET

    for index in range(total):
        builder.set_page(index)
        builder.line(
            margin, rule_y, builder.page_width - margin, rule_y, width=0.2, color=FOOTER_RULE_COLOR
        )
        builder.text(
            f"Page {index + 1} of {total}",
            builder.page_width / 2,
            text_y,
            font=fonts.regular,
            size=8,
            color=FOOTER_COLOR,
            align="center",
        )
        if label:
            builder.text(label, margin, text_y, font=fonts.regular, size=8, color=FOOTER_COLOR)

    logger.debug("Stamped footers on %d page(s)", total)
    return total


__all__ = ["footer_title", "stamp_footers"]
