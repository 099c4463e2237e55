"""Exception types shared across the rendering pipeline."""

from __future__ import annotations

from pathlib import Path


class Material2PdfError(Exception):
    """Base class for all material2pdf errors."""


class ContentFormatError(Material2PdfError):
    """Raised when the input content tree or markdown cannot be interpreted."""

    def __init__(self, message: str, source: Path | None = None) -> None:
        self.source = source
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class FontLoadError(Material2PdfError):
    """Raised when a configured font family cannot be loaded."""

    def __init__(self, font_path: Path, cause: Exception | None = None) -> None:
        self.font_path = font_path
        self.cause = cause
        message = f"Failed to load font {font_path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class BlockCaptureError(Material2PdfError):
    """Raised when a block cannot be rasterized.

    ``index`` is 1-based, matching the position reported to users.
    """

    def __init__(self, index: int, block_type: str, cause: Exception | None = None) -> None:
        self.index = index
        self.block_type = block_type
        self.cause = cause
        message = f"Failed to capture block {index} ({block_type})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class DiagramRenderError(Material2PdfError):
    """Raised when the external diagram renderer fails or times out."""

    def __init__(
        self,
        kind: str | None,
        cause: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.kind = kind
        self.cause = cause
        self.timeout = timeout
        label = kind or "unknown"
        if timeout is not None:
            message = f"Diagram rendering ({label}) timed out after {timeout:g}s"
        else:
            message = f"Diagram rendering ({label}) failed"
        if cause:
            message += f": {cause}"
        super().__init__(message)


__all__ = [
    "BlockCaptureError",
    "ContentFormatError",
    "DiagramRenderError",
    "FontLoadError",
    "Material2PdfError",
]
