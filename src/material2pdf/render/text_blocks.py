"""Native vector text: headings, paragraphs, reference lists and the document header.

Text is wrapped to the content width and emitted at the cursor. A line that
would cross the bottom margin continues on a new page; the block-level break
check happens afterwards in the block renderer.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date

from material2pdf.model.content import (
    HEADING_TYPES,
    BlockType,
    ReferenceListBlock,
    TextBlock,
    sanitize_text,
)
from material2pdf.render.fonts import FontSet
from material2pdf.render.page_builder import Color, PageBuilder
from material2pdf.render.paginator import PageCursor, advance_page, ensure_room

PT_TO_MM = 25.4 / 72

PRIMARY: Color = (63, 45, 175)
ACCENT: Color = (255, 70, 130)

DEFAULT_REFERENCES_TITLE = "Referências Bibliográficas"

# Reference layout (mm / pt)
REFERENCE_FONT_SIZE = 9
REFERENCE_INDENT = 12
REFERENCE_LINE_HEIGHT = 4
REFERENCE_ENTRY_GAP = 3
REFERENCE_CHARS_PER_LINE = 80
REFERENCE_FOOTER_ZONE = 15

# Justified lines whose word gaps would exceed this are compressed or left-aligned (mm)
MAX_JUSTIFY_GAP = 12
JUSTIFY_COMPRESSION = 0.95
# Final words shorter than this are not left alone on the last line
ORPHAN_MAX_CHARS = 10


@dataclass(frozen=True, slots=True)
class TextSpec:
    size: float
    bold: bool
    line_height: float
    gap: float
    color: Color
    underline: Color | None = None
    underline_width: float = 0.0
    underline_max: float = 0.0


TEXT_SPECS: dict[BlockType, TextSpec] = {
    BlockType.H2: TextSpec(16, True, 7, 8, PRIMARY, ACCENT, 1.2, 80),
    BlockType.H3: TextSpec(13, True, 6, 6, (145, 127, 251), (145, 127, 251), 0.8, 60),
    BlockType.H4: TextSpec(11, True, 5, 5, (255, 113, 160)),
    BlockType.PARAGRAPH: TextSpec(11, False, 6.5, 5, (40, 40, 40)),
}

_BOLD_SPLIT_RE = re.compile(r"\*\*(.*?)\*\*")

Run = tuple[str, bool]


def _baseline(cursor: PageCursor, size: float) -> float:
    return cursor.y + size * PT_TO_MM * 0.8


def _next_line(cursor: PageCursor, builder: PageBuilder, line_height: float) -> None:
    # Lines never start below the bottom margin
    if cursor.y + line_height > cursor.ceiling and not cursor.at_top:
        advance_page(cursor, builder)


def wrap_runs(
    text: str, builder: PageBuilder, fonts: FontSet, size: float, width: float
) -> list[list[Run]]:
    """Wrap text with ``**bold**`` markers into lines of (word, bold) runs."""
    lines: list[list[Run]] = []
    space = builder.text_width(" ", fonts.regular, size)
    for paragraph in text.split("\n"):
        words: list[Run] = []
        for index, part in enumerate(_BOLD_SPLIT_RE.split(paragraph)):
            words.extend((word, index % 2 == 1) for word in part.split())
        current: list[Run] = []
        current_width = 0.0
        for word, bold in words:
            word_width = builder.text_width(word, fonts.face(bold=bold), size)
            needed = word_width + (space if current else 0.0)
            if current and current_width + needed > width:
                lines.append(current)
                current, current_width = [], 0.0
                needed = word_width
            current.append((word, bold))
            current_width += needed
        lines.append(current)
    return lines


def smart_split(
    text: str, builder: PageBuilder, font: str, size: float, width: float
) -> list[str]:
    """Greedy word wrap that keeps a short final word from ending up alone.

    When the second-to-last word overflows and only a short word follows, the
    last word of the full line moves down with it.
    """
    words = text.split()
    if not words:
        return [""]
    lines: list[str] = []
    current: list[str] = []
    for index, word in enumerate(words):
        candidate = " ".join([*current, word])
        if current and builder.text_width(candidate, font, size) > width:
            next_is_orphan = (
                index == len(words) - 2 and len(words[index + 1]) < ORPHAN_MAX_CHARS
            )
            if next_is_orphan and len(current) > 2:
                moved = current.pop()
                lines.append(" ".join(current))
                current = [moved, word]
                continue
            lines.append(" ".join(current))
            current = [word]
        else:
            current.append(word)
    lines.append(" ".join(current))
    return lines


def justify_line(
    line: str,
    builder: PageBuilder,
    x: float,
    y: float,
    width: float,
    *,
    font: str,
    size: float,
    color: Color,
    last: bool = False,
) -> None:
    """Draw ``line`` stretched to ``width``; last and single-word lines stay ragged."""
    words = line.split()
    if not words:
        return
    if last or len(words) == 1:
        builder.text(line, x, y, font=font, size=size, color=color)
        return

    widths = [builder.text_width(word, font, size) for word in words]
    words_width = sum(widths)
    gap = (width - words_width) / (len(words) - 1)
    if gap > MAX_JUSTIFY_GAP:
        compressed = width * JUSTIFY_COMPRESSION
        if words_width >= compressed:
            builder.text(line, x, y, font=font, size=size, color=color)
            return
        gap = (compressed - words_width) / (len(words) - 1)

    for word, word_width in zip(words, widths):
        builder.text(word, x, y, font=font, size=size, color=color)
        x += word_width + gap


def _emit_justified(
    text: str, spec: TextSpec, builder: PageBuilder, cursor: PageCursor, fonts: FontSet
) -> int:
    font = fonts.face(bold=spec.bold)
    count = 0
    for segment in text.split("\n"):
        lines = smart_split(segment, builder, font, spec.size, cursor.content_width)
        for index, line in enumerate(lines):
            _next_line(cursor, builder, spec.line_height)
            justify_line(
                line,
                builder,
                cursor.margin,
                _baseline(cursor, spec.size),
                cursor.content_width,
                font=font,
                size=spec.size,
                color=spec.color,
                last=index == len(lines) - 1,
            )
            cursor.y += spec.line_height
        count += len(lines)
    cursor.y += spec.gap
    return count


def emit_text_block(
    block: TextBlock,
    builder: PageBuilder,
    cursor: PageCursor,
    fonts: FontSet,
    justify: bool = False,
) -> int:
    """Emit a heading or paragraph; returns the number of lines drawn.

    With ``justify`` set, paragraphs without bold runs are drawn as justified
    lines; headings and mixed-weight paragraphs are always left-aligned.
    """
    spec = TEXT_SPECS.get(block.type, TEXT_SPECS[BlockType.PARAGRAPH])
    text, has_bold = sanitize_text(fonts.normalize(block.text))
    if block.type in HEADING_TYPES:
        text, has_bold = text.replace("**", ""), False

    if justify and block.type is BlockType.PARAGRAPH and not has_bold:
        return _emit_justified(text, spec, builder, cursor, fonts)

    font = fonts.face(bold=spec.bold)
    if has_bold:
        run_lines = wrap_runs(text, builder, fonts, spec.size, cursor.content_width)
    else:
        wrapped = builder.wrap(text, font, spec.size, cursor.content_width)
        run_lines = [[(line, spec.bold)] for line in wrapped]

    space = builder.text_width(" ", fonts.regular, spec.size)
    for runs in run_lines:
        _next_line(cursor, builder, spec.line_height)
        x = cursor.margin
        y = _baseline(cursor, spec.size)
        for word, bold in runs:
            if not word:
                continue
            face = fonts.face(bold=bold)
            builder.text(word, x, y, font=face, size=spec.size, color=spec.color)
            x += builder.text_width(word, face, spec.size) + space
        cursor.y += spec.line_height

    if spec.underline is not None:
        length = min(builder.text_width(text, font, spec.size) + 5, spec.underline_max)
        builder.line(
            cursor.margin,
            cursor.y,
            cursor.margin + length,
            cursor.y,
            width=spec.underline_width,
            color=spec.underline,
        )
    cursor.y += spec.gap
    return len(run_lines)


def _gradient_rule(
    builder: PageBuilder, x: float, y: float, length: float, width: float, segments: int
) -> None:
    step = length / segments
    for i in range(segments):
        ratio = i / segments
        color = (
            round(ACCENT[0] + (PRIMARY[0] - ACCENT[0]) * ratio),
            round(ACCENT[1] + (PRIMARY[1] - ACCENT[1]) * ratio),
            round(ACCENT[2] + (PRIMARY[2] - ACCENT[2]) * ratio),
        )
        builder.line(x + i * step, y, x + (i + 1) * step, y, width=width, color=color)


def reference_height_estimate(reference: str) -> float:
    lines = math.ceil(len(reference) / REFERENCE_CHARS_PER_LINE)
    return lines * REFERENCE_LINE_HEIGHT + REFERENCE_ENTRY_GAP


def emit_references(
    block: ReferenceListBlock, builder: PageBuilder, cursor: PageCursor, fonts: FontSet
) -> int:
    """Emit the references section; returns the number of entries drawn.

    Every entry is checked against the remaining space before it is drawn, so
    a long list flows over as many pages as it needs.
    """
    ensure_room(20, cursor, builder)
    title = fonts.normalize(block.title or DEFAULT_REFERENCES_TITLE)
    builder.text(
        title, cursor.margin, _baseline(cursor, 14), font=fonts.bold, size=14, color=PRIMARY
    )
    cursor.y += 8
    _gradient_rule(builder, cursor.margin, cursor.y, cursor.content_width * 0.5, 0.6, 15)
    cursor.y += 6

    text_width = cursor.content_width - REFERENCE_INDENT
    for index, reference in enumerate(block.items, start=1):
        estimate = reference_height_estimate(reference)
        ensure_room(estimate + REFERENCE_FOOTER_ZONE, cursor, builder)
        y = _baseline(cursor, REFERENCE_FONT_SIZE)
        builder.text(
            f"[{index}]",
            cursor.margin,
            y,
            font=fonts.bold,
            size=REFERENCE_FONT_SIZE,
            color=ACCENT,
        )
        lines = builder.wrap(
            fonts.normalize(reference), fonts.regular, REFERENCE_FONT_SIZE, text_width
        )
        for offset, line in enumerate(lines):
            builder.text(
                line,
                cursor.margin + REFERENCE_INDENT,
                y + offset * REFERENCE_LINE_HEIGHT,
                font=fonts.regular,
                size=REFERENCE_FONT_SIZE,
                color=(60, 60, 60),
            )
        cursor.y += len(lines) * REFERENCE_LINE_HEIGHT + REFERENCE_ENTRY_GAP

    cursor.y += 5
    return len(block.items)


def emit_document_header(
    title: str,
    builder: PageBuilder,
    cursor: PageCursor,
    fonts: FontSet,
    generated_on: date | None = None,
) -> None:
    """Centred title, decorative gradient rule and generation date line."""
    center = cursor.page_width / 2
    cursor.y += 8
    for line in builder.wrap(fonts.normalize(title), fonts.bold, 18, cursor.content_width):
        builder.text(
            line, center, cursor.y, font=fonts.bold, size=18, color=PRIMARY, align="center"
        )
        cursor.y += 8

    _gradient_rule(builder, cursor.margin, cursor.y, cursor.content_width, 1.5, 20)
    cursor.y += 6

    day = generated_on or date.today()
    builder.text(
        f"Generated by material2pdf  •  {day:%d/%m/%Y}",
        center,
        cursor.y,
        font=fonts.regular,
        size=10,
        color=ACCENT,
        align="center",
    )
    cursor.y += 15


__all__ = [
    "DEFAULT_REFERENCES_TITLE",
    "TEXT_SPECS",
    "TextSpec",
    "emit_document_header",
    "emit_references",
    "emit_text_block",
    "justify_line",
    "reference_height_estimate",
    "smart_split",
    "wrap_runs",
]
