"""Vertical layout cursor and page-break decisions.

The cursor is owned by a single render call and passed explicitly to every
placement; nothing else keeps layout state. Two break policies coexist:
image blocks and reference entries are checked before placement
(:func:`ensure_room`), general text blocks are placed first and checked
afterwards (:func:`settle_after_text`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from material2pdf.render.page_builder import PageBuilder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PageCursor:
    """Current page and vertical offset, in millimetres from the page top."""

    page_width: float = 210.0
    page_height: float = 297.0
    margin: float = 20.0
    page_index: int = 0
    y: float = 20.0
    pages_added: int = 0

    @classmethod
    def for_builder(cls, builder: PageBuilder, margin: float) -> PageCursor:
        return cls(
            page_width=builder.page_width,
            page_height=builder.page_height,
            margin=margin,
            page_index=builder.current_page,
            y=margin,
        )

    @property
    def ceiling(self) -> float:
        return self.page_height - self.margin

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def printable_height(self) -> float:
        return self.page_height - 2 * self.margin

    @property
    def at_top(self) -> bool:
        return self.y <= self.margin

    @property
    def remaining(self) -> float:
        return self.ceiling - self.y


def will_fit(projected_height: float, cursor: PageCursor) -> bool:
    return cursor.y + projected_height <= cursor.ceiling


def advance_page(cursor: PageCursor, builder: PageBuilder) -> None:
    """Start a new page and reset the cursor to the top margin."""
    cursor.page_index = builder.add_page()
    cursor.y = cursor.margin
    cursor.pages_added += 1
    logger.debug("Advanced to page %d", cursor.page_index + 1)


def ensure_room(projected_height: float, cursor: PageCursor, builder: PageBuilder) -> bool:
    """Break the page before placement when ``projected_height`` does not fit.

    A cursor already at the top margin is left alone, since a new page would
    offer no more room. Returns True when a page was added.
    """
    if will_fit(projected_height, cursor) or cursor.at_top:
        return False
    advance_page(cursor, builder)
    return True


def settle_after_text(cursor: PageCursor, builder: PageBuilder) -> bool:
    """Break the page after a text block that ran past the ceiling."""
    if cursor.y <= cursor.ceiling:
        return False
    advance_page(cursor, builder)
    return True


__all__ = ["PageCursor", "advance_page", "ensure_room", "settle_after_text", "will_fit"]
