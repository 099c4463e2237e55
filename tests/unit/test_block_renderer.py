"""Tests for the block renderer loop."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from material2pdf.model.content import (
    BlockType,
    ChartBlock,
    ComponentBlock,
    DiagramBlock,
    HighlightBlock,
    ReferenceListBlock,
    TextBlock,
    UnknownBlock,
)
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.render.block_renderer import (
    DEDICATED_CAPTION,
    BlockRenderer,
    place_image,
    place_image_full_page,
    wants_dedicated_page,
)
from material2pdf.render.fonts import FontSet
from material2pdf.render.page_builder import ImageOp, PageBuilder, TextOp
from material2pdf.render.paginator import PageCursor
from material2pdf.render.rasterizer import CapturedImage


def _image(width: int, height: int) -> CapturedImage:
    return CapturedImage(data=b"", width=width, height=height, format="PNG")


def _images(builder: PageBuilder) -> list[ImageOp]:
    return [op for ops in builder.pages for op in ops if isinstance(op, ImageOp)]


class TestPlaceImage:
    """Test image sizing and placement."""

    def test_full_width(self, builder: PageBuilder, cursor: PageCursor) -> None:
        width, height = place_image(_image(600, 300), builder, cursor)

        assert width == 170
        assert height == pytest.approx(85)
        assert cursor.y == pytest.approx(20 + 85 + 8)
        (op,) = _images(builder)
        assert op.x == 20

    def test_short_narrow_image_is_centred_at_70_percent(
        self, builder: PageBuilder, cursor: PageCursor
    ) -> None:
        width, height = place_image(_image(800, 200), builder, cursor)

        assert width == pytest.approx(119)
        assert height == pytest.approx(29.75)
        (op,) = _images(builder)
        assert op.x == pytest.approx(20 + (170 - 119) / 2)

    def test_tall_image_is_shrunk_to_the_printable_area(
        self, builder: PageBuilder, cursor: PageCursor
    ) -> None:
        width, height = place_image(_image(1000, 5000), builder, cursor)

        assert height == pytest.approx(257)
        assert width == pytest.approx(51.4)
        assert builder.page_count == 1

    def test_breaks_before_an_image_that_does_not_fit(
        self, builder: PageBuilder, cursor: PageCursor
    ) -> None:
        cursor.y = 240
        place_image(_image(600, 300), builder, cursor)

        assert builder.page_count == 2
        (op,) = _images(builder)
        assert op.y == 20
        assert builder.pages[0] == ()


class TestDedicatedPages:
    """Test the choice and layout of full-page images."""

    def test_tall_image(self, cursor: PageCursor) -> None:
        assert wants_dedicated_page(HighlightBlock("t", "x"), _image(1000, 1500), cursor)

    def test_mid_sized_diagram_gets_a_page_but_a_box_does_not(self, cursor: PageCursor) -> None:
        # 85mm tall at full width, placed at the top of the page
        image = _image(600, 300)

        assert wants_dedicated_page(DiagramBlock(BlockType.FLOWCHART, "F"), image, cursor)
        assert not wants_dedicated_page(HighlightBlock("t", "x"), image, cursor)

    def test_image_taking_most_of_the_remaining_space(self, cursor: PageCursor) -> None:
        cursor.y = 150

        assert wants_dedicated_page(HighlightBlock("t", "x"), _image(600, 300), cursor)

    def test_wide_short_image_stays_inline(self, cursor: PageCursor) -> None:
        assert not wants_dedicated_page(ChartBlock(title="C"), _image(1700, 400), cursor)

    def test_full_page_layout(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet
    ) -> None:
        cursor.y = 100

        width, height = place_image_full_page(_image(1000, 1500), builder, cursor, fonts)

        assert height == pytest.approx(257 * 0.85)
        assert width == pytest.approx(height / 1.5)
        assert builder.page_count == 3
        assert cursor.y == 20
        (op,) = [op for op in builder.pages[1] if isinstance(op, ImageOp)]
        assert op.x == pytest.approx((210 - width) / 2)
        assert op.y == pytest.approx((297 - height) / 2)
        (caption,) = [op for op in builder.pages[1] if isinstance(op, TextOp)]
        assert caption.text == DEDICATED_CAPTION
        assert caption.align == "center"
        assert caption.y > op.y + op.height

    def test_no_blank_page_at_the_top(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet
    ) -> None:
        place_image_full_page(_image(1000, 1500), builder, cursor, fonts)

        assert builder.page_count == 2
        assert len(_images(builder)) == 1
        assert builder.pages[1] == ()

    def test_renderer_uses_dedicated_pages_when_enabled(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, make_rasterizer
    ) -> None:
        renderer = BlockRenderer(
            make_rasterizer(width=1000, height=1500),
            fonts,
            options=RenderOptions(dedicated_image_pages=True),
        )
        blocks = [TextBlock(BlockType.H2, "Intro"), HighlightBlock("t", "x")]

        stats = asyncio.run(renderer.render(blocks, builder, cursor))

        assert stats.dedicated_pages == 1
        assert stats.images_captured == 1
        assert stats.pages_added == 2
        assert _images(builder)[0] in builder.pages[1]

    def test_renderer_places_inline_by_default(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, make_rasterizer
    ) -> None:
        renderer = BlockRenderer(make_rasterizer(width=1000, height=1500), fonts)

        stats = asyncio.run(renderer.render([HighlightBlock("t", "x")], builder, cursor))

        assert stats.dedicated_pages == 0
        assert builder.page_count == 1


class TestBlockRenderer:
    """Test dispatch, statistics and failure handling."""

    def test_capture_failure_is_skipped_with_warning(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, make_rasterizer
    ) -> None:
        rasterizer = make_rasterizer(fail_tags=("post_it",))
        renderer = BlockRenderer(rasterizer, fonts)
        blocks = [
            TextBlock(BlockType.H2, "Intro"),
            TextBlock(BlockType.POST_IT, "Dica"),
            TextBlock(BlockType.PARAGRAPH, "Texto depois do post-it."),
            HighlightBlock(title="Nota", text="corpo"),
        ]

        stats = asyncio.run(renderer.render(blocks, builder, cursor))

        assert renderer.warnings == ["Failed to capture block 2 (post_it)"]
        assert stats.capture_failures == 1
        assert rasterizer.captured == ["caixa_de_destaque"]
        assert stats.images_captured == 1
        assert stats.highlight_boxes == 1
        assert stats.post_its == 0
        assert stats.native_text_blocks == 2
        assert stats.paragraphs == 1
        assert stats.headings == {"h2": 1, "h3": 0, "h4": 0}
        texts = [op.text for op in builder.pages[0] if isinstance(op, TextOp)]
        assert texts[-1] == "Texto depois do post-it."
        assert len(_images(builder)) == 1

    def test_category_counters(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, fake_rasterizer
    ) -> None:
        blocks = [
            DiagramBlock(BlockType.FLOWCHART, "F"),
            DiagramBlock(BlockType.MIND_MAP, "M"),
            ChartBlock(title="C"),
            TextBlock(BlockType.POST_IT, "P"),
            TextBlock(BlockType.H3, "Sub"),
            TextBlock(BlockType.H4, "Det"),
            ReferenceListBlock(items=("Ref",)),
            UnknownBlock(tag="video", text="legenda do video"),
        ]

        stats = asyncio.run(BlockRenderer(fake_rasterizer, fonts).render(blocks, builder, cursor))

        assert stats.images_captured == 4
        assert stats.diagrams == 2
        assert stats.charts == 1
        assert stats.post_its == 1
        assert stats.native_text_blocks == 4
        assert stats.headings == {"h2": 0, "h3": 1, "h4": 1}
        assert stats.references == 1
        assert stats.paragraphs == 1
        assert stats.total_pages == builder.page_count
        assert stats.pages_added == builder.page_count - 1

    def test_residual_markdown_heading(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, fake_rasterizer
    ) -> None:
        blocks = [TextBlock(BlockType.PARAGRAPH, "## Secao")]

        stats = asyncio.run(BlockRenderer(fake_rasterizer, fonts).render(blocks, builder, cursor))

        assert stats.headings["h2"] == 1
        assert stats.paragraphs == 0

    def test_outline_headings_follow_the_markdown_form(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, fake_rasterizer
    ) -> None:
        blocks = [
            TextBlock(BlockType.H2, "Intro"),
            TextBlock(BlockType.PARAGRAPH, "Texto."),
            DiagramBlock(BlockType.FLOWCHART, "Fluxo"),
            ChartBlock(title="Notas"),
            TextBlock(BlockType.H4, "Detalhe"),
            TextBlock(BlockType.POST_IT, "Dica"),
            ComponentBlock("Accordion", title="Perguntas"),
            ReferenceListBlock(items=("Ref",)),
        ]

        stats = asyncio.run(BlockRenderer(fake_rasterizer, fonts).render(blocks, builder, cursor))

        # h2, diagram, chart, accordion and references; h4 and post-its are not level 1-3
        assert stats.outline_headings == 5

    def test_short_text_sequence_stays_on_one_page(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, fake_rasterizer
    ) -> None:
        blocks = [
            TextBlock(BlockType.H2, "Intro"),
            TextBlock(BlockType.H3, "Contexto"),
            TextBlock(BlockType.PARAGRAPH, "Primeiro paragrafo curto."),
            TextBlock(BlockType.PARAGRAPH, "Segundo paragrafo curto."),
        ]

        stats = asyncio.run(BlockRenderer(fake_rasterizer, fonts).render(blocks, builder, cursor))

        assert builder.page_count == 1
        assert stats.pages_added == 0
        assert stats.total_pages == 1

    def test_many_images_add_pages(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, make_rasterizer
    ) -> None:
        rasterizer = make_rasterizer(width=600, height=300)
        blocks = [HighlightBlock(title=str(i), text="x") for i in range(10)]

        stats = asyncio.run(BlockRenderer(rasterizer, fonts).render(blocks, builder, cursor))

        # 85mm images, two per page
        assert builder.page_count == 5
        assert stats.pages_added == 4
        for op in _images(builder):
            assert op.y + op.height <= cursor.ceiling

    def test_progress_events(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, make_rasterizer
    ) -> None:
        events: list[tuple[str, dict[str, Any]]] = []
        rasterizer = make_rasterizer(fail_tags=("grafico",))
        blocks = [TextBlock(BlockType.H2, "A"), ChartBlock(title="C")]
        renderer = BlockRenderer(rasterizer, fonts, lambda e, p: events.append((e, p)))

        asyncio.run(renderer.render(blocks, builder, cursor))

        assert [e for e, _ in events] == [
            "render:start",
            "block:rendered",
            "block:failed",
            "render:finalized",
        ]
        assert events[0][1] == {"blocks": 2}
        assert events[1][1]["path"] == "text"
        assert events[2][1]["index"] == 2
        assert events[3][1]["failures"] == 1

    def test_progress_callback_errors_are_swallowed(
        self, builder: PageBuilder, cursor: PageCursor, fonts: FontSet, fake_rasterizer
    ) -> None:
        def broken(event: str, payload: dict[str, Any]) -> None:
            raise RuntimeError("ui gone")

        renderer = BlockRenderer(fake_rasterizer, fonts, broken)
        stats = asyncio.run(
            renderer.render([TextBlock(BlockType.H2, "A")], builder, cursor)
        )

        assert stats.native_text_blocks == 1
