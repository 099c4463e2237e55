"""Page builder: per-page display lists replayed onto a ReportLab canvas.

Drawing calls are recorded rather than written straight to the canvas so
that finished pages can be revisited (footers need the final page count).
Coordinates are millimetres with the origin at the top-left corner of the
page; text ``y`` is the baseline.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

BLACK: Color = (0, 0, 0)


@dataclass(frozen=True, slots=True)
class TextOp:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: Color = BLACK
    align: str = "left"  # left | center | right


@dataclass(frozen=True, slots=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.2
    color: Color = BLACK


@dataclass(frozen=True, slots=True)
class ImageOp:
    x: float
    y: float
    width: float
    height: float
    data: bytes
    format: str = "PNG"


PageOp = TextOp | LineOp | ImageOp


class PageBuilder:
    """Mutable multi-page document under construction."""

    def __init__(self, page_width: float = 210.0, page_height: float = 297.0) -> None:
        self.page_width = page_width
        self.page_height = page_height
        self._pages: list[list[PageOp]] = [[]]
        self._current = 0

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def current_page(self) -> int:
        """0-based index of the page receiving drawing calls."""
        return self._current

    @property
    def pages(self) -> tuple[tuple[PageOp, ...], ...]:
        return tuple(tuple(ops) for ops in self._pages)

    def add_page(self) -> int:
        self._pages.append([])
        self._current = len(self._pages) - 1
        return self._current

    def set_page(self, index: int) -> None:
        if not 0 <= index < len(self._pages):
            raise IndexError(f"page {index} out of range (0..{len(self._pages) - 1})")
        self._current = index

    def text(
        self,
        text: str,
        x: float,
        y: float,
        *,
        font: str = "Helvetica",
        size: float = 11,
        color: Color = BLACK,
        align: str = "left",
    ) -> None:
        self._pages[self._current].append(TextOp(x, y, text, font, size, color, align))

    def line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        *,
        width: float = 0.2,
        color: Color = BLACK,
    ) -> None:
        self._pages[self._current].append(LineOp(x1, y1, x2, y2, width, color))

    def image(
        self, data: bytes, x: float, y: float, width: float, height: float, fmt: str = "PNG"
    ) -> None:
        self._pages[self._current].append(ImageOp(x, y, width, height, data, fmt))

    @staticmethod
    def text_width(text: str, font: str, size: float) -> float:
        """Rendered width of ``text`` in millimetres."""
        return pdfmetrics.stringWidth(text, font, size) / mm

    def wrap(self, text: str, font: str, size: float, width: float) -> list[str]:
        """Split ``text`` into lines no wider than ``width`` millimetres.

        Words wider than a full line are broken between characters.
        """
        lines: list[str] = []
        for line in simpleSplit(text, font, size, width * mm):
            if self.text_width(line, font, size) <= width:
                lines.append(line)
            else:
                lines.extend(self._break_long(line, font, size, width))
        return lines

    def _break_long(self, line: str, font: str, size: float, width: float) -> list[str]:
        pieces: list[str] = []
        current = ""
        for char in line:
            candidate = current + char
            if current and self.text_width(candidate, font, size) > width:
                pieces.append(current.rstrip())
                current = char.lstrip()
            else:
                current = candidate
        if current:
            pieces.append(current)
        return pieces

    def to_pdf_bytes(self, title: str | None = None, author: str | None = None) -> bytes:
        """Replay every page onto a ReportLab canvas and return the PDF bytes."""
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(self.page_width * mm, self.page_height * mm))
        if title:
            pdf.setTitle(title)
        if author:
            pdf.setAuthor(author)
        for ops in self._pages:
            for op in ops:
                self._draw(pdf, op)
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _draw(self, pdf: canvas.Canvas, op: PageOp) -> None:
        if isinstance(op, TextOp):
            pdf.setFont(op.font, op.size)
            pdf.setFillColorRGB(*(c / 255 for c in op.color))
            x = op.x * mm
            y = (self.page_height - op.y) * mm
            if op.align == "center":
                pdf.drawCentredString(x, y, op.text)
            elif op.align == "right":
                pdf.drawRightString(x, y, op.text)
            else:
                pdf.drawString(x, y, op.text)
        elif isinstance(op, LineOp):
            pdf.setStrokeColorRGB(*(c / 255 for c in op.color))
            pdf.setLineWidth(op.width * mm)
            pdf.line(
                op.x1 * mm,
                (self.page_height - op.y1) * mm,
                op.x2 * mm,
                (self.page_height - op.y2) * mm,
            )
        else:
            reader = ImageReader(io.BytesIO(op.data))
            pdf.drawImage(
                reader,
                op.x * mm,
                (self.page_height - op.y - op.height) * mm,
                width=op.width * mm,
                height=op.height * mm,
                mask="auto" if op.format == "PNG" else None,
            )

    def save(self, path: Path, title: str | None = None) -> Path:
        data = self.to_pdf_bytes(title=title)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Wrote %d page(s) to %s (%d bytes)", self.page_count, path, len(data))
        return path


__all__ = ["BLACK", "Color", "ImageOp", "LineOp", "PageBuilder", "PageOp", "TextOp"]
