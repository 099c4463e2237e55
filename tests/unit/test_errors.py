"""Tests for custom exception classes."""

from __future__ import annotations

from pathlib import Path

from material2pdf.errors import (
    BlockCaptureError,
    ContentFormatError,
    DiagramRenderError,
    FontLoadError,
    Material2PdfError,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_all_derive_from_base(self) -> None:
        errors = (BlockCaptureError, ContentFormatError, DiagramRenderError, FontLoadError)
        for error_type in errors:
            assert issubclass(error_type, Material2PdfError)

    def test_content_format_error_with_source(self) -> None:
        error = ContentFormatError("invalid JSON", source=Path("/in/aula.json"))

        assert error.source == Path("/in/aula.json")
        assert str(error) == "/in/aula.json: invalid JSON"

    def test_content_format_error_basic(self) -> None:
        assert str(ContentFormatError("empty markdown input")) == "empty markdown input"

    def test_font_load_error(self) -> None:
        cause = OSError("unreadable")
        error = FontLoadError(Path("/fonts/DejaVuSans.ttf"), cause)

        assert error.font_path == Path("/fonts/DejaVuSans.ttf")
        assert error.cause is cause
        assert str(error) == "Failed to load font /fonts/DejaVuSans.ttf: unreadable"

    def test_block_capture_error(self) -> None:
        error = BlockCaptureError(3, "post_it")

        assert error.index == 3
        assert error.block_type == "post_it"
        assert str(error) == "Failed to capture block 3 (post_it)"

    def test_block_capture_error_with_cause(self) -> None:
        error = BlockCaptureError(3, "post_it", RuntimeError("boom"))

        assert str(error) == "Failed to capture block 3 (post_it): boom"

    def test_diagram_render_error_failure(self) -> None:
        error = DiagramRenderError("graph", "exit 1")

        assert error.kind == "graph"
        assert error.timeout is None
        assert str(error) == "Diagram rendering (graph) failed: exit 1"

    def test_diagram_render_error_timeout(self) -> None:
        error = DiagramRenderError(None, timeout=2.5)

        assert str(error) == "Diagram rendering (unknown) timed out after 2.5s"
