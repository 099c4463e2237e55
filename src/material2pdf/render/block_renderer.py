"""Block renderer: dispatches every block to the image or the text path.

Blocks are processed strictly in document order. Each block finishes its
placement, including any page break it causes, before the next one starts,
since all of them share the same builder and cursor.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Sequence
from contextlib import suppress
from typing import Any

from material2pdf.errors import BlockCaptureError
from material2pdf.ingest.feature_logger import log_block_decision, log_error_policy
from material2pdf.model.content import (
    DIAGRAM_TYPES,
    HEADING_TYPES,
    BlockType,
    ContentBlock,
    ReferenceListBlock,
    TextBlock,
    UnknownBlock,
    has_outline_heading,
    normalize_residual_markdown,
)
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.model.results import RenderStats
from material2pdf.render.fonts import FontSet
from material2pdf.render.page_builder import PageBuilder
from material2pdf.render.paginator import (
    PageCursor,
    advance_page,
    ensure_room,
    settle_after_text,
)
from material2pdf.render.rasterizer import CapturedImage, Rasterizer
from material2pdf.render.strategies import strategy_for
from material2pdf.render.text_blocks import emit_references, emit_text_block

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None] | None

# Image placement (mm)
IMAGE_GAP = 8
SHORT_IMAGE_HEIGHT = 60
NARROW_IMAGE_RATIO = 0.7
NATURAL_PX_PER_MM = 10

# Dedicated-page placement (mm)
DEDICATED_WIDTH_RATIO = 0.9
DEDICATED_HEIGHT_RATIO = 0.85
DEDICATED_CAPTION = "Image enlarged on a dedicated page"
DEDICATED_CAPTION_GAP = 8
FOOTER_SAFE_ZONE = 20
TALL_ASPECT_RATIO = 1.3


def _safe_emit(on_progress: ProgressCallback, event: str, payload: dict[str, Any]) -> None:
    if on_progress is None:
        return
    with suppress(Exception):
        on_progress(event, payload)


def _count_image(block: ContentBlock, stats: RenderStats) -> None:
    stats.images_captured += 1
    block_type = block.type
    if block_type in DIAGRAM_TYPES:
        stats.diagrams += 1
    elif block_type is BlockType.CHART:
        stats.charts += 1
    elif block_type is BlockType.POST_IT:
        stats.post_its += 1
    elif block_type is BlockType.HIGHLIGHT_BOX:
        stats.highlight_boxes += 1
    elif block_type is BlockType.COMPONENT:
        stats.components += 1
    if has_outline_heading(block):
        stats.outline_headings += 1


def _count_text(block: ContentBlock, stats: RenderStats) -> None:
    stats.native_text_blocks += 1
    if block.type in HEADING_TYPES:
        stats.headings[block.tag] += 1
    elif block.type is BlockType.PARAGRAPH or isinstance(block, UnknownBlock):
        stats.paragraphs += 1
    elif block.type is BlockType.REFERENCES:
        stats.references += 1
    if has_outline_heading(block):
        stats.outline_headings += 1


def inline_size(image: CapturedImage, cursor: PageCursor) -> tuple[float, float]:
    """Page-space size of an image placed in the flow, before any shrinking."""
    content_width = cursor.content_width
    width = content_width
    height = image.height / image.width * content_width

    natural_width = image.width / NATURAL_PX_PER_MM
    if height < SHORT_IMAGE_HEIGHT and natural_width < content_width:
        width = content_width * NARROW_IMAGE_RATIO
        height = image.height / image.width * width
    return width, height


def wants_dedicated_page(
    block: ContentBlock, image: CapturedImage, cursor: PageCursor
) -> bool:
    """Decide whether an image is better read on a page of its own.

    Large images, tall images, mid-sized diagrams and charts, and images that
    would take a big share of the space left on the page all qualify.
    """
    _, height = inline_size(image, cursor)
    aspect = image.height / image.width
    available = cursor.ceiling - cursor.y - FOOTER_SAFE_ZONE
    occupancy = height / available if available > 0 else math.inf
    diagrammatic = (
        block.type in DIAGRAM_TYPES
        or block.type is BlockType.CHART
        or bool(getattr(block, "definition", ""))
    )
    return (
        height > 120
        or (height > 80 and diagrammatic)
        or aspect > TALL_ASPECT_RATIO
        or (occupancy > 0.4 and height > 60)
        or (available < 150 and height > 70)
        or (cursor.y > 100 and height > 80)
    )


def place_image_full_page(
    image: CapturedImage, builder: PageBuilder, cursor: PageCursor, fonts: FontSet
) -> tuple[float, float]:
    """Centre an image on its own page with a caption; the next block starts a new page."""
    if cursor.y > cursor.margin + 10:
        advance_page(cursor, builder)

    max_width = cursor.content_width * DEDICATED_WIDTH_RATIO
    max_height = cursor.printable_height * DEDICATED_HEIGHT_RATIO
    scale = min(max_width / image.width, max_height / image.height)
    width = image.width * scale
    height = image.height * scale
    x = (cursor.page_width - width) / 2
    y = (cursor.page_height - height) / 2

    builder.image(image.data, x, y, width, height, image.format)
    builder.text(
        DEDICATED_CAPTION,
        cursor.page_width / 2,
        y + height + DEDICATED_CAPTION_GAP,
        font=fonts.italic,
        size=8,
        color=(145, 127, 251),
        align="center",
    )
    advance_page(cursor, builder)
    return width, height


def place_image(
    image: CapturedImage, builder: PageBuilder, cursor: PageCursor
) -> tuple[float, float]:
    """Place a captured image at the cursor; returns its page-space size in mm."""
    content_width = cursor.content_width
    width, height = inline_size(image, cursor)

    # Taller than a whole page: shrink into the printable area
    if height > cursor.printable_height:
        scale = cursor.printable_height / height
        width *= scale
        height = cursor.printable_height

    ensure_room(height, cursor, builder)
    x = cursor.margin + (content_width - width) / 2
    builder.image(image.data, x, cursor.y, width, height, image.format)
    cursor.y += height + IMAGE_GAP
    return width, height


class BlockRenderer:
    """Render a block sequence into a :class:`PageBuilder`."""

    def __init__(
        self,
        rasterizer: Rasterizer,
        fonts: FontSet,
        on_progress: ProgressCallback = None,
        *,
        options: RenderOptions | None = None,
    ) -> None:
        self.rasterizer = rasterizer
        self.fonts = fonts
        self.on_progress = on_progress
        self.options = options or RenderOptions()
        self.warnings: list[str] = []

    async def render(
        self, blocks: Sequence[ContentBlock], builder: PageBuilder, cursor: PageCursor
    ) -> RenderStats:
        stats = RenderStats()
        total = len(blocks)
        _safe_emit(self.on_progress, "render:start", {"blocks": total})
        pages_before = cursor.pages_added

        for index, block in enumerate(blocks, start=1):
            block = normalize_residual_markdown(block)
            strategy = strategy_for(block)
            if strategy.render_as_image:
                await self._render_image(index, block, builder, cursor, stats)
            else:
                self._render_text(index, block, builder, cursor)
                _count_text(block, stats)
                _safe_emit(
                    self.on_progress,
                    "block:rendered",
                    {
                        "index": index,
                        "type": block.tag,
                        "path": "text",
                        "page": cursor.page_index + 1,
                    },
                )

        stats.pages_added = cursor.pages_added - pages_before
        stats.total_pages = builder.page_count
        _safe_emit(
            self.on_progress,
            "render:finalized",
            {"blocks": total, "pages": stats.total_pages, "failures": stats.capture_failures},
        )
        return stats

    async def _render_image(
        self,
        index: int,
        block: ContentBlock,
        builder: PageBuilder,
        cursor: PageCursor,
        stats: RenderStats,
    ) -> None:
        started = time.perf_counter()
        try:
            image = await self.rasterizer.capture(block, cursor.content_width)
        except Exception as exc:
            error = BlockCaptureError(index, block.tag, exc)
            log_error_policy("Capture", "capture_failed", "skip", str(error))
            self.warnings.append(f"Failed to capture block {index} ({block.tag})")
            stats.capture_failures += 1
            _safe_emit(
                self.on_progress,
                "block:failed",
                {"index": index, "type": block.tag, "error": str(exc)},
            )
            return
        finally:
            stats.capture_time_ms += (time.perf_counter() - started) * 1000

        if self.options.dedicated_image_pages and wants_dedicated_page(block, image, cursor):
            width, height = place_image_full_page(image, builder, cursor, self.fonts)
            # The cursor already moved past the image page
            page = cursor.page_index
            stats.dedicated_pages += 1
            placement = "dedicated-page"
        else:
            width, height = place_image(image, builder, cursor)
            page = cursor.page_index + 1
            placement = "image"
        _count_image(block, stats)
        log_block_decision(
            index, block.tag, placement, {"format": image.format, "mm": f"{width:.0f}x{height:.0f}"}
        )
        _safe_emit(
            self.on_progress,
            "block:rendered",
            {"index": index, "type": block.tag, "path": "image", "page": page},
        )

    def _render_text(
        self, index: int, block: ContentBlock, builder: PageBuilder, cursor: PageCursor
    ) -> None:
        if isinstance(block, ReferenceListBlock):
            entries = emit_references(block, builder, cursor, self.fonts)
            log_block_decision(index, block.tag, "text", {"entries": entries})
        elif isinstance(block, TextBlock):
            lines = emit_text_block(
                block, builder, cursor, self.fonts, justify=self.options.justify_text
            )
            log_block_decision(index, block.tag, "text", {"lines": lines})
        else:
            text = getattr(block, "text", "")
            if text:
                emit_text_block(
                    TextBlock(BlockType.PARAGRAPH, text),
                    builder,
                    cursor,
                    self.fonts,
                    justify=self.options.justify_text,
                )
            log_block_decision(index, block.tag, "text", {"fallback": "unknown tag"})
        if settle_after_text(cursor, builder):
            log_block_decision(index, block.tag, "page-break", {"page": cursor.page_index + 1})


__all__ = [
    "BlockRenderer",
    "ProgressCallback",
    "inline_size",
    "place_image",
    "place_image_full_page",
    "wants_dedicated_page",
]
