"""Tests for render options module."""

from pathlib import Path

import pytest

from material2pdf.model.pipeline_options import DiagramMode, PageFormat, RenderOptions


class TestPageFormat:
    """Test PageFormat enum."""

    def test_enum_values(self) -> None:
        """Test enum values match expected CLI strings."""
        assert PageFormat.A4.value == "a4"
        assert PageFormat.LETTER.value == "letter"

    def test_invalid_string_raises_error(self) -> None:
        with pytest.raises(ValueError):
            PageFormat("a5")


class TestDiagramMode:
    """Test DiagramMode enum."""

    def test_enum_values(self) -> None:
        assert DiagramMode.AUTO.value == "auto"
        assert DiagramMode.MERMAID_CLI.value == "mermaid-cli"
        assert DiagramMode.OFF.value == "off"

    def test_enum_from_string(self) -> None:
        assert DiagramMode("mermaid-cli") == DiagramMode.MERMAID_CLI


class TestRenderOptions:
    """Test RenderOptions dataclass."""

    def test_default_values(self) -> None:
        """Defaults reproduce the web generator's layout constants."""
        options = RenderOptions()

        assert options.page_format == PageFormat.A4
        assert options.margin_mm == 20.0
        assert options.device_scale == 1.2
        assert options.pixels_per_mm == 10.0
        assert options.jpeg_quality == 85
        assert options.diagram_mode == DiagramMode.AUTO
        assert options.unicode_font is None
        assert options.header is True
        assert options.dedicated_image_pages is False
        assert options.justify_text is False

    def test_derived_sizes(self) -> None:
        options = RenderOptions()

        assert options.page_size_mm == (210.0, 297.0)
        assert options.content_width_mm == 170.0
        assert options.max_pixel_width == 1700

    def test_letter_size(self) -> None:
        options = RenderOptions(page_format=PageFormat.LETTER, margin_mm=25.4)

        assert options.page_size_mm == (215.9, 279.4)
        assert options.content_width_mm == pytest.approx(165.1)

    def test_from_cli_defaults(self) -> None:
        options = RenderOptions.from_cli()

        assert options.page_format == PageFormat.A4
        assert options.diagram_mode == DiagramMode.AUTO
        assert options.output_dir == Path("dist")

    def test_from_cli_all_values(self, tmp_path: Path) -> None:
        font = tmp_path / "DejaVuSans.ttf"
        options = RenderOptions.from_cli(
            page_format="LETTER",
            margin=15,
            diagrams="off",
            diagram_timeout=3,
            mermaid_executable="/opt/mmdc",
            unicode_font=font,
            output_dir=tmp_path,
            jpeg_quality=70,
            header=False,
            dedicated_image_pages=True,
            justify_text=True,
        )

        assert options.page_format == PageFormat.LETTER
        assert options.margin_mm == 15
        assert options.diagram_mode == DiagramMode.OFF
        assert options.diagram_timeout == 3
        assert options.mermaid_executable == "/opt/mmdc"
        assert options.unicode_font == font
        assert options.output_dir == tmp_path
        assert options.jpeg_quality == 70
        assert options.header is False
        assert options.dedicated_image_pages is True
        assert options.justify_text is True

    def test_from_cli_invalid_page_format(self) -> None:
        with pytest.raises(ValueError, match="Invalid page format 'a5'. Valid values:"):
            RenderOptions.from_cli(page_format="a5")

    def test_from_cli_invalid_diagram_mode(self) -> None:
        with pytest.raises(ValueError, match="Invalid diagram mode 'browser'"):
            RenderOptions.from_cli(diagrams="browser")

    @pytest.mark.parametrize("margin", [0, -5, 105])
    def test_from_cli_invalid_margin(self, margin: float) -> None:
        with pytest.raises(ValueError, match="Invalid margin"):
            RenderOptions.from_cli(margin=margin)

    def test_from_cli_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="Invalid diagram timeout"):
            RenderOptions.from_cli(diagram_timeout=0)

    @pytest.mark.parametrize("quality", [0, 96])
    def test_from_cli_invalid_jpeg_quality(self, quality: int) -> None:
        with pytest.raises(ValueError, match="Invalid JPEG quality"):
            RenderOptions.from_cli(jpeg_quality=quality)

    def test_to_dict(self) -> None:
        data = RenderOptions().to_dict()

        assert data["page_format"] == "a4"
        assert data["diagram_mode"] == "auto"
        assert data["unicode_font"] is None
        assert data["output_dir"] == "dist"
        assert data["dedicated_image_pages"] is False
        assert data["justify_text"] is False

    def test_repr(self) -> None:
        text = repr(RenderOptions())

        assert "page_format=a4" in text
        assert "diagram_mode=auto" in text
