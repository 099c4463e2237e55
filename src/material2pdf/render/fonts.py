"""Font resources shared by the PDF text path and the raster fragments.

Fonts are acquired once per generation run through :func:`load_fonts` and
released when the run ends. Without a configured TrueType family the
built-in Helvetica faces are used; those only cover Latin-1, so math symbols
and pictographs are normalised to plain-text equivalents before drawing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from material2pdf.errors import FontLoadError
from material2pdf.ingest.feature_logger import log_feature_availability
from material2pdf.model.pipeline_options import RenderOptions

logger = logging.getLogger(__name__)

# Plain-text stand-ins for symbols the built-in fonts cannot draw
SYMBOL_FALLBACKS: dict[str, str] = {
    "≤": "<=",
    "≥": ">=",
    "≠": "!=",
    "≈": "~",
    "≡": "==",
    "∞": "inf",
    "∑": "sum",
    "∏": "prod",
    "∫": "int",
    "√": "sqrt",
    "∂": "d",
    "∆": "Delta",
    "∇": "nabla",
    "∈": " in ",
    "∉": " not in ",
    "∪": "U",
    "∩": "n",
    "→": "->",
    "←": "<-",
    "↔": "<->",
    "⇒": "=>",
    "⇔": "<=>",
    "α": "alpha",
    "β": "beta",
    "γ": "gamma",
    "δ": "delta",
    "θ": "theta",
    "λ": "lambda",
    "π": "pi",
    "σ": "sigma",
    "ω": "omega",
    "Ω": "Omega",
}

PilFont = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass
class FontSet:
    """Font faces for one generation run."""

    regular: str = "Helvetica"
    bold: str = "Helvetica-Bold"
    italic: str = "Helvetica-Oblique"
    unicode: bool = False
    raster_regular: Path | None = None
    raster_bold: Path | None = None
    _cache: dict[tuple[int, bool], PilFont] = field(default_factory=dict, repr=False)

    def face(self, bold: bool = False, italic: bool = False) -> str:
        if bold:
            return self.bold
        if italic:
            return self.italic
        return self.regular

    def raster_font(self, size_px: int, bold: bool = False) -> PilFont:
        """Pillow font handle at ``size_px`` pixels, cached per run."""
        key = (size_px, bold)
        font = self._cache.get(key)
        if font is None:
            path = self.raster_bold if bold else self.raster_regular
            if path is not None:
                font = ImageFont.truetype(str(path), size_px)
            else:
                font = ImageFont.load_default(size=size_px)
            self._cache[key] = font
        return font

    def normalize(self, text: str) -> str:
        """Replace characters the active faces cannot draw."""
        if self.unicode:
            return text
        for symbol, fallback in SYMBOL_FALLBACKS.items():
            if symbol in text:
                text = text.replace(symbol, fallback)
        return text.encode("cp1252", "ignore").decode("cp1252")

    def close(self) -> None:
        self._cache.clear()


def _register(path: Path) -> str:
    name = path.stem
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, str(path)))
    return name


@contextmanager
def load_fonts(options: RenderOptions) -> Iterator[FontSet]:
    """Acquire the fonts configured in ``options`` for the duration of a run.

    Raises:
        FontLoadError: If a configured font file is missing or unreadable
    """
    path = options.unicode_font
    if path is None:
        log_feature_availability("Unicode font", False, "using built-in faces, symbols normalized")
        fonts = FontSet()
    else:
        if not path.is_file():
            raise FontLoadError(path, FileNotFoundError("no such file"))
        bold_path = path.with_name(f"{path.stem}-Bold{path.suffix}")
        try:
            regular = _register(path)
            bold = _register(bold_path) if bold_path.is_file() else regular
            ImageFont.truetype(str(path), 12)
        except (OSError, TTFError) as exc:
            raise FontLoadError(path, exc) from exc
        log_feature_availability("Unicode font", True)
        fonts = FontSet(
            regular=regular,
            bold=bold,
            italic=regular,
            unicode=True,
            raster_regular=path,
            raster_bold=bold_path if bold_path.is_file() else path,
        )
    try:
        yield fonts
    finally:
        fonts.close()


__all__ = ["FontSet", "SYMBOL_FALLBACKS", "load_fonts"]
