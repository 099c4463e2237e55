"""Rendering options for the material2pdf pipeline.

Defaults reproduce the layout constants of the web generator (A4 portrait,
20mm margins, 1.2 capture scale, 10 pixels per millimetre, JPEG quality 85)
so PDFs produced with no options match what users already download.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

# Page sizes in millimetres (width, height), portrait
PAGE_SIZES_MM: dict[str, tuple[float, float]] = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
}


class PageFormat(Enum):
    """Paper size options."""

    A4 = "a4"
    LETTER = "letter"


class DiagramMode(Enum):
    """Diagram rendering options."""

    AUTO = "auto"  # Use the Mermaid CLI when installed, fall back to source text
    MERMAID_CLI = "mermaid-cli"  # Require the Mermaid CLI; failures become block warnings
    OFF = "off"  # Never call an external renderer


@dataclass
class RenderOptions:
    """Pipeline configuration for material2pdf rendering."""

    page_format: PageFormat = PageFormat.A4

    # Page margin on all four sides, in millimetres
    margin_mm: float = 20.0

    # Device-scale factor applied when drawing raster fragments
    device_scale: float = 1.2

    # Maximum raster density; wider captures are downscaled
    pixels_per_mm: float = 10.0

    jpeg_quality: int = 85

    diagram_mode: DiagramMode = DiagramMode.AUTO

    # Upper bound on a single external diagram render, in seconds
    diagram_timeout: float = 10.0

    mermaid_executable: str = "mmdc"

    # TrueType family with Unicode math coverage (e.g. DejaVuSans.ttf)
    unicode_font: Path | None = None

    output_dir: Path = Path("dist")

    # Title, decorative rule and date line on the first page
    header: bool = True

    # Large, tall or diagram images get a page of their own
    dedicated_image_pages: bool = False

    # Justified paragraph lines with short last words kept off their own line
    justify_text: bool = False

    @property
    def page_size_mm(self) -> tuple[float, float]:
        return PAGE_SIZES_MM[self.page_format.value]

    @property
    def content_width_mm(self) -> float:
        return self.page_size_mm[0] - 2 * self.margin_mm

    @property
    def max_pixel_width(self) -> int:
        return round(self.content_width_mm * self.pixels_per_mm)

    @classmethod
    def from_cli(
        cls,
        *,
        page_format: str = "a4",
        margin: float = 20.0,
        diagrams: str = "auto",
        diagram_timeout: float = 10.0,
        mermaid_executable: str = "mmdc",
        unicode_font: Path | None = None,
        output_dir: Path = Path("dist"),
        jpeg_quality: int = 85,
        header: bool = True,
        dedicated_image_pages: bool = False,
        justify_text: bool = False,
    ) -> RenderOptions:
        """Build RenderOptions from CLI argument values.

        Args:
            page_format: Paper size ("a4", "letter")
            margin: Page margin in millimetres
            diagrams: Diagram mode ("auto", "mermaid-cli", "off")
            diagram_timeout: Seconds allowed for one diagram render
            mermaid_executable: Name or path of the Mermaid CLI
            unicode_font: Optional TrueType font file
            output_dir: Directory receiving the PDF
            jpeg_quality: JPEG quality for opaque raster blocks (1-95)
            header: Whether to draw the document header
            dedicated_image_pages: Whether large images move to a page of their own
            justify_text: Whether paragraph lines are justified

        Returns:
            RenderOptions instance with mapped enum values

        Raises:
            ValueError: If any argument has an invalid value
        """
        try:
            fmt = PageFormat(page_format.lower())
        except ValueError as exc:
            valid_values = [f.value for f in PageFormat]
            raise ValueError(
                f"Invalid page format '{page_format}'. Valid values: {valid_values}"
            ) from exc

        try:
            diagram_mode = DiagramMode(diagrams)
        except ValueError as exc:
            valid_values = [mode.value for mode in DiagramMode]
            raise ValueError(
                f"Invalid diagram mode '{diagrams}'. Valid values: {valid_values}"
            ) from exc

        page_width = PAGE_SIZES_MM[fmt.value][0]
        if margin <= 0 or margin * 2 >= page_width:
            raise ValueError(f"Invalid margin {margin}mm for page width {page_width}mm")
        if diagram_timeout <= 0:
            raise ValueError(f"Invalid diagram timeout {diagram_timeout}; must be positive")
        if not 1 <= jpeg_quality <= 95:
            raise ValueError(f"Invalid JPEG quality {jpeg_quality}; valid range is 1-95")

        return cls(
            page_format=fmt,
            margin_mm=margin,
            diagram_mode=diagram_mode,
            diagram_timeout=diagram_timeout,
            mermaid_executable=mermaid_executable,
            unicode_font=unicode_font,
            output_dir=output_dir,
            jpeg_quality=jpeg_quality,
            header=header,
            dedicated_image_pages=dedicated_image_pages,
            justify_text=justify_text,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "page_format": self.page_format.value,
            "margin_mm": self.margin_mm,
            "device_scale": self.device_scale,
            "pixels_per_mm": self.pixels_per_mm,
            "jpeg_quality": self.jpeg_quality,
            "diagram_mode": self.diagram_mode.value,
            "diagram_timeout": self.diagram_timeout,
            "mermaid_executable": self.mermaid_executable,
            "unicode_font": str(self.unicode_font) if self.unicode_font else None,
            "output_dir": str(self.output_dir),
            "header": self.header,
            "dedicated_image_pages": self.dedicated_image_pages,
            "justify_text": self.justify_text,
        }

    def __repr__(self) -> str:
        return (
            f"RenderOptions("
            f"page_format={self.page_format.value}, "
            f"margin_mm={self.margin_mm}, "
            f"diagram_mode={self.diagram_mode.value}, "
            f"diagram_timeout={self.diagram_timeout}, "
            f"unicode_font={self.unicode_font!r}"
            f")"
        )


__all__ = [
    "DiagramMode",
    "PAGE_SIZES_MM",
    "PageFormat",
    "RenderOptions",
]
