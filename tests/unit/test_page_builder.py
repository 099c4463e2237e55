"""Tests for the page builder display lists and PDF output."""

from __future__ import annotations

from pathlib import Path

import pytest

from material2pdf.render.page_builder import ImageOp, LineOp, PageBuilder, TextOp


class TestPages:
    """Test page management."""

    def test_starts_with_one_page(self, builder: PageBuilder) -> None:
        assert builder.page_count == 1
        assert builder.current_page == 0

    def test_add_and_set_page(self, builder: PageBuilder) -> None:
        assert builder.add_page() == 1
        builder.text("second", 20, 30)
        builder.set_page(0)
        builder.text("first", 20, 30)

        first, second = builder.pages
        assert [op.text for op in first if isinstance(op, TextOp)] == ["first"]
        assert [op.text for op in second if isinstance(op, TextOp)] == ["second"]

    def test_set_page_out_of_range(self, builder: PageBuilder) -> None:
        with pytest.raises(IndexError):
            builder.set_page(1)

    def test_ops_are_recorded(self, builder: PageBuilder) -> None:
        builder.line(0, 0, 10, 0, width=0.5, color=(1, 2, 3))
        builder.image(b"data", 1, 2, 3, 4, "JPEG")

        line, image = builder.pages[0]
        assert line == LineOp(0, 0, 10, 0, 0.5, (1, 2, 3))
        assert image == ImageOp(1, 2, 3, 4, b"data", "JPEG")


class TestTextMetrics:
    """Test measuring and wrapping."""

    def test_text_width_scales_with_size(self) -> None:
        small = PageBuilder.text_width("Hello", "Helvetica", 10)
        large = PageBuilder.text_width("Hello", "Helvetica", 20)

        assert small > 0
        assert large == pytest.approx(small * 2)

    def test_wrap_respects_width(self, builder: PageBuilder) -> None:
        text = "palavra " * 60

        lines = builder.wrap(text, "Helvetica", 11, 100)

        assert len(lines) > 1
        for line in lines:
            assert builder.text_width(line, "Helvetica", 11) <= 100

    def test_wrap_breaks_overlong_words(self, builder: PageBuilder) -> None:
        lines = builder.wrap("A" * 500, "Helvetica", 11, 170)

        assert len(lines) > 1
        assert "".join(lines) == "A" * 500
        for line in lines:
            assert builder.text_width(line, "Helvetica", 11) <= 170


class TestOutput:
    """Test PDF serialization."""

    def test_to_pdf_bytes(self, builder: PageBuilder) -> None:
        builder.text("Hello", 20, 30, align="center")
        builder.add_page()
        builder.text("World", 190, 30, align="right")

        data = builder.to_pdf_bytes(title="Doc")

        assert data.startswith(b"%PDF")
        assert b"%%EOF" in data[-10:]

    def test_save_creates_parent(self, builder: PageBuilder, tmp_path: Path) -> None:
        path = builder.save(tmp_path / "out" / "doc.pdf", title="Doc")

        assert path.is_file()
        assert path.read_bytes().startswith(b"%PDF")
