"""Tests for raster fragments and block capture."""

from __future__ import annotations

import asyncio
import io

import pytest
from PIL import Image

from material2pdf.model.content import (
    BlockType,
    ChartBlock,
    ChartPoint,
    ComponentBlock,
    DiagramBlock,
    HighlightBlock,
    TextBlock,
    UnknownBlock,
)
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.render.fonts import FontSet
from material2pdf.render.rasterizer import (
    CSS_PX_PER_MM,
    DEFAULT_STYLE,
    FRAGMENT_STYLES,
    BlockRasterizer,
    build_fragment,
    style_for,
    wrap_pixels,
)
from material2pdf.render.strategies import RENDER_STRATEGIES, RenderStrategy


def _accordion() -> ComponentBlock:
    return ComponentBlock(
        component="Accordion",
        title="FAQ",
        props={
            "items": [
                {"trigger": "Q1", "content": "Resposta longa " * 20},
                {"trigger": "Q2", "content": "Outra resposta " * 20},
            ]
        },
    )


class StaticDiagramRenderer:
    def __init__(self, image: Image.Image | None) -> None:
        self.image = image
        self.calls: list[str] = []

    async def render(self, definition: str) -> Image.Image | None:
        self.calls.append(definition)
        return self.image


class TestStyles:
    """Test style lookup."""

    def test_style_for_known_and_unknown(self) -> None:
        assert style_for(TextBlock(BlockType.POST_IT, "x")) is FRAGMENT_STYLES[BlockType.POST_IT]
        assert style_for(UnknownBlock(tag="video")) is DEFAULT_STYLE

    def test_lossless_types(self) -> None:
        assert FRAGMENT_STYLES[BlockType.POST_IT].lossless
        assert FRAGMENT_STYLES[BlockType.FLOWCHART].lossless
        assert FRAGMENT_STYLES[BlockType.COMPONENT].lossless
        assert not FRAGMENT_STYLES[BlockType.HIGHLIGHT_BOX].lossless


class TestWrapPixels:
    """Test pixel word wrap."""

    def test_wraps_within_width(self, fonts: FontSet) -> None:
        font = fonts.raster_font(16)

        lines = wrap_pixels("palavra " * 40, font, 200)

        assert len(lines) > 1
        assert all(font.getlength(line) <= 200 for line in lines)

    def test_breaks_overlong_word(self, fonts: FontSet) -> None:
        font = fonts.raster_font(16)

        lines = wrap_pixels("A" * 200, font, 100)

        assert "".join(lines) == "A" * 200
        assert len(lines) > 1


class TestBuildFragment:
    """Test fragment drawing."""

    def test_width_is_fixed_and_height_grows_with_text(self, fonts: FontSet) -> None:
        short = build_fragment(TextBlock(BlockType.POST_IT, "Dica curta"), 600, fonts)
        long = build_fragment(TextBlock(BlockType.POST_IT, "Dica longa " * 80), 600, fonts)

        assert short.width == long.width == 600
        assert long.height > short.height
        assert short.mode == "RGB"

    def test_corner_is_white_padding(self, fonts: FontSet) -> None:
        image = build_fragment(HighlightBlock(title="Nota", text="corpo"), 600, fonts)

        assert image.getpixel((2, 2)) == (255, 255, 255)

    def test_diagram_picture_is_embedded(self, fonts: FontSet) -> None:
        block = DiagramBlock(BlockType.FLOWCHART, "Fluxo", "", "graph TD\nA-->B")
        diagram = Image.new("RGB", (300, 500), (0, 0, 255))

        with_picture = build_fragment(block, 600, fonts, diagram)
        with_source = build_fragment(block, 600, fonts)

        assert with_picture.height > with_source.height

    def test_chart_and_component(self, fonts: FontSet) -> None:
        chart = ChartBlock(title="Notas", points=(ChartPoint("A", 40), ChartPoint("B", 140)))
        component = ComponentBlock(
            component="Accordion",
            title="FAQ",
            props={
                "items": [
                    {"trigger": "Q1", "content": "A1"},
                    {"trigger": "Q2", "content": "A2"},
                ]
            },
        )

        assert build_fragment(chart, 600, fonts).width == 600
        assert build_fragment(component, 600, fonts).height > 100

    def test_collapsed_accordion_shows_only_triggers(self, fonts: FontSet) -> None:
        expanded = build_fragment(_accordion(), 600, fonts)
        collapsed = build_fragment(_accordion(), 600, fonts, expand_accordions=False)

        assert collapsed.width == expanded.width
        assert collapsed.height < expanded.height


class TestBlockRasterizer:
    """Test encoding and downscaling of captures."""

    def test_post_it_is_png_at_capture_width(self, fonts: FontSet) -> None:
        rasterizer = BlockRasterizer(fonts, RenderOptions())

        image = asyncio.run(rasterizer.capture(TextBlock(BlockType.POST_IT, "Dica"), 170))

        assert image.format == "PNG"
        assert image.width == round(170 * CSS_PX_PER_MM * 1.2)
        assert Image.open(io.BytesIO(image.data)).size == (image.width, image.height)

    def test_highlight_box_is_jpeg(self, fonts: FontSet) -> None:
        rasterizer = BlockRasterizer(fonts, RenderOptions(jpeg_quality=60))

        image = asyncio.run(rasterizer.capture(HighlightBlock(title="T", text="x"), 170))

        assert image.format == "JPEG"
        assert image.data[:2] == b"\xff\xd8"

    def test_wide_capture_is_downscaled(self, fonts: FontSet) -> None:
        rasterizer = BlockRasterizer(fonts, RenderOptions(pixels_per_mm=2))

        image = asyncio.run(rasterizer.capture(TextBlock(BlockType.POST_IT, "Dica"), 170))

        assert image.width == 340

    def test_diagram_renderer_is_awaited(self, fonts: FontSet) -> None:
        renderer = StaticDiagramRenderer(Image.new("RGB", (200, 120), (10, 10, 10)))
        rasterizer = BlockRasterizer(fonts, RenderOptions(), renderer)
        block = DiagramBlock(BlockType.MIND_MAP, "Mapa", "", "mindmap\n  root")

        image = asyncio.run(rasterizer.capture(block, 170))

        assert renderer.calls == ["mindmap\n  root"]
        assert image.format == "PNG"

    def test_empty_definition_skips_renderer(self, fonts: FontSet) -> None:
        renderer = StaticDiagramRenderer(None)
        rasterizer = BlockRasterizer(fonts, RenderOptions(), renderer)

        asyncio.run(rasterizer.capture(DiagramBlock(BlockType.DIAGRAM, "Vazio"), 170))

        assert renderer.calls == []

    def test_component_strategy_controls_accordion_expansion(
        self, fonts: FontSet, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        rasterizer = BlockRasterizer(fonts, RenderOptions())
        expanded = asyncio.run(rasterizer.capture(_accordion(), 170))

        monkeypatch.setitem(
            RENDER_STRATEGIES,
            BlockType.COMPONENT,
            RenderStrategy(render_as_image=True, expand_accordions=False),
        )
        collapsed = asyncio.run(rasterizer.capture(_accordion(), 170))

        assert collapsed.width == expanded.width
        assert collapsed.height < expanded.height
