"""Raster capture of styled blocks (callouts, highlight boxes, diagrams, charts).

Each image-path block is drawn with Pillow as a standalone fragment: a white
canvas holding a box styled per block type, sized to the content width at
the capture scale. The fragment is encoded and discarded; only the bytes
reach the page.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageDraw

from material2pdf.model.content import (
    DIAGRAM_ICONS,
    BlockType,
    ChartBlock,
    ComponentBlock,
    ContentBlock,
    DiagramBlock,
    HighlightBlock,
    TextBlock,
    post_it_icon,
    strip_html,
)
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.render.diagrams import DiagramRenderer, NullDiagramRenderer
from material2pdf.render.fonts import FontSet, PilFont
from material2pdf.render.strategies import strategy_for

logger = logging.getLogger(__name__)

# CSS pixels per millimetre at 96 dpi
CSS_PX_PER_MM = 96 / 25.4

# White border around every fragment, in CSS pixels
OUTER_PADDING = 20

Rgb = tuple[int, int, int]

WHITE: Rgb = (255, 255, 255)


def _hex(value: str) -> Rgb:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


@dataclass(frozen=True, slots=True)
class FragmentStyle:
    """Box chrome for one block type. Sizes are CSS pixels before scaling."""

    background: Rgb = WHITE
    background_end: Rgb | None = None  # diagonal gradient end colour
    border: Rgb | None = None
    border_width: int = 0
    dashed: bool = False
    radius: int = 0
    accent: Rgb | None = None  # left accent bar colour
    accent_width: int = 0
    padding: int = 16
    title_color: Rgb = _hex("#1f2937")
    text_color: Rgb = (0, 0, 0)
    lossless: bool = False  # PNG instead of JPEG


_DIAGRAM_STYLE = FragmentStyle(
    background=_hex("#f9fafb"),
    border=_hex("#e5e7eb"),
    border_width=2,
    radius=12,
    padding=24,
    text_color=_hex("#6b7280"),
    lossless=True,
)

FRAGMENT_STYLES: dict[BlockType, FragmentStyle] = {
    BlockType.POST_IT: FragmentStyle(
        background=_hex("#fef3c7"),
        background_end=_hex("#fde047"),
        border=_hex("#eab308"),
        border_width=2,
        dashed=True,
        radius=8,
        padding=16,
        lossless=True,
    ),
    BlockType.HIGHLIGHT_BOX: FragmentStyle(
        background=_hex("#fef3c7"),
        background_end=_hex("#fde68a"),
        accent=_hex("#f59e0b"),
        accent_width=4,
        radius=12,
        padding=20,
        title_color=_hex("#92400e"),
        text_color=_hex("#78350f"),
    ),
    BlockType.FLOWCHART: _DIAGRAM_STYLE,
    BlockType.MIND_MAP: _DIAGRAM_STYLE,
    BlockType.DIAGRAM: _DIAGRAM_STYLE,
    BlockType.CHART: _DIAGRAM_STYLE,
    BlockType.COMPONENT: FragmentStyle(
        background=_hex("#ede9fe"),
        background_end=_hex("#ddd6fe"),
        border=_hex("#a855f7"),
        border_width=2,
        radius=12,
        padding=24,
        title_color=_hex("#581c87"),
        text_color=_hex("#6b21a8"),
        lossless=True,
    ),
}

DEFAULT_STYLE = FragmentStyle()


_BAR_TRACK = _hex("#e5e7eb")
_BAR_FILL = _hex("#3b82f6")
_BAR_FILL_END = _hex("#2563eb")
_ITEM_BACKGROUND = _hex("#faf5ff")
_ITEM_BORDER = _hex("#c084fc")


def style_for(block: ContentBlock) -> FragmentStyle:
    if block.type is None:
        return DEFAULT_STYLE
    return FRAGMENT_STYLES.get(block.type, DEFAULT_STYLE)


@dataclass(frozen=True, slots=True)
class CapturedImage:
    data: bytes
    width: int
    height: int
    format: str  # PNG | JPEG


class Rasterizer(Protocol):
    async def capture(self, block: ContentBlock, content_width_mm: float) -> CapturedImage: ...


def _line_height(font: PilFont) -> int:
    _, top, _, bottom = font.getbbox("ÁgjpqÇ")
    return int((bottom - top) * 1.6) + 1


def wrap_pixels(text: str, font: PilFont, max_width: int) -> list[str]:
    """Greedy word wrap to ``max_width`` pixels; overlong words break per character."""
    lines: list[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if font.getlength(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            current = ""
            for char in word:
                if current and font.getlength(current + char) > max_width:
                    lines.append(current)
                    current = char
                else:
                    current += char
        lines.append(current)
    return lines


def _gradient_rect(
    target: Image.Image, box: tuple[int, int, int, int], start: Rgb, end: Rgb
) -> None:
    left, top, right, bottom = box
    width = max(1, right - left)
    draw = ImageDraw.Draw(target)
    for i in range(width):
        t = i / width
        color = tuple(round(a + (b - a) * t) for a, b in zip(start, end, strict=True))
        draw.line((left + i, top, left + i, bottom), fill=color)


@dataclass(slots=True)
class _TextRun:
    lines: list[str]
    font: PilFont
    color: Rgb

    @property
    def height(self) -> int:
        return _line_height(self.font) * len(self.lines)

    def draw(self, target: Image.Image, x: int, y: int, width: int) -> None:
        draw = ImageDraw.Draw(target)
        step = _line_height(self.font)
        for i, line in enumerate(self.lines):
            draw.text((x, y + i * step), line, font=self.font, fill=self.color)


@dataclass(slots=True)
class _Gap:
    height: int

    def draw(self, target: Image.Image, x: int, y: int, width: int) -> None:
        pass


@dataclass(slots=True)
class _Picture:
    image: Image.Image

    @property
    def height(self) -> int:
        return self.image.height

    def draw(self, target: Image.Image, x: int, y: int, width: int) -> None:
        target.paste(self.image, (x + max(0, (width - self.image.width) // 2), y))


@dataclass(slots=True)
class _Bar:
    """Labelled horizontal bar; values are percentages capped at 100."""

    label: str
    value: float
    font: PilFont
    bar_height: int
    spacing: int

    @property
    def height(self) -> int:
        return _line_height(self.font) + self.spacing + self.bar_height

    def draw(self, target: Image.Image, x: int, y: int, width: int) -> None:
        draw = ImageDraw.Draw(target)
        value_text = f"{self.value:g}"
        draw.text((x, y), self.label, font=self.font, fill=(0, 0, 0))
        value_x = x + width - int(self.font.getlength(value_text))
        draw.text((value_x, y), value_text, font=self.font, fill=_hex("#6b7280"))
        top = y + _line_height(self.font) + self.spacing
        bottom = top + self.bar_height
        draw.rounded_rectangle((x, top, x + width, bottom), radius=self.spacing, fill=_BAR_TRACK)
        fill_width = round(width * max(0.0, min(self.value, 100.0)) / 100.0)
        if fill_width > 0:
            _gradient_rect(target, (x, top, x + fill_width, bottom), _BAR_FILL, _BAR_FILL_END)


@dataclass(slots=True)
class _Item:
    """Expanded accordion item: a bordered box around its own flow."""

    flow: _Flow
    padding: int
    radius: int
    border: int

    @property
    def height(self) -> int:
        return self.flow.height + 2 * self.padding

    def draw(self, target: Image.Image, x: int, y: int, width: int) -> None:
        ImageDraw.Draw(target).rounded_rectangle(
            (x, y, x + width, y + self.height),
            radius=self.radius,
            fill=_ITEM_BACKGROUND,
            outline=_ITEM_BORDER,
            width=self.border,
        )
        self.flow.draw(target, x + self.padding, y + self.padding)


class _Flow:
    """Vertical flow of fragment elements, measured before anything is drawn."""

    def __init__(self, width: int, scale: float, fonts: FontSet) -> None:
        self.width = width
        self.scale = scale
        self.fonts = fonts
        self.elements: list[_TextRun | _Gap | _Picture | _Bar | _Item] = []

    def px(self, css: float) -> int:
        return max(1, round(css * self.scale))

    def text(self, text: str, size: int, color: Rgb, bold: bool = False) -> None:
        text = self.fonts.normalize(text)
        if not text.strip():
            return
        font = self.fonts.raster_font(self.px(size), bold=bold)
        self.elements.append(_TextRun(wrap_pixels(text, font, self.width), font, color))

    def gap(self, css: float) -> None:
        self.elements.append(_Gap(self.px(css)))

    def picture(self, image: Image.Image) -> None:
        if image.width > self.width:
            height = max(1, round(image.height * self.width / image.width))
            image = image.resize((self.width, height), Image.Resampling.LANCZOS)
        self.elements.append(_Picture(image.convert("RGB")))

    def bar(self, label: str, value: float) -> None:
        font = self.fonts.raster_font(self.px(12), bold=True)
        self.elements.append(
            _Bar(self.fonts.normalize(label), value, font, self.px(20), self.px(4))
        )

    def item(self, trigger: str, content: str, style: FragmentStyle) -> None:
        padding = self.px(12)
        flow = _Flow(self.width - 2 * padding, self.scale, self.fonts)
        flow.text(trigger, 14, style.title_color, bold=True)
        flow.gap(8)
        flow.text(content, 13, style.text_color)
        self.elements.append(_Item(flow, padding, self.px(8), self.px(1)))

    @property
    def height(self) -> int:
        return sum(element.height for element in self.elements)

    def draw(self, target: Image.Image, x: int, y: int) -> None:
        for element in self.elements:
            element.draw(target, x, y, self.width)
            y += element.height


def _box_background(size: tuple[int, int], style: FragmentStyle) -> Image.Image:
    if style.background_end is None:
        return Image.new("RGB", size, style.background)
    # Diagonal gradient: average of a horizontal and a vertical ramp
    horizontal = Image.linear_gradient("L").rotate(90).resize(size)
    vertical = Image.linear_gradient("L").resize(size)
    mask = Image.blend(horizontal, vertical, 0.5)
    start = Image.new("RGB", size, style.background)
    end = Image.new("RGB", size, style.background_end)
    return Image.composite(end, start, mask)


def _dashed_border(
    draw: ImageDraw.ImageDraw, box: tuple[int, int, int, int], color: Rgb, width: int, dash: int
) -> None:
    left, top, right, bottom = box
    for x in range(left, right, dash * 2):
        draw.line((x, top, min(x + dash, right), top), fill=color, width=width)
        draw.line((x, bottom, min(x + dash, right), bottom), fill=color, width=width)
    for y in range(top, bottom, dash * 2):
        draw.line((left, y, left, min(y + dash, bottom)), fill=color, width=width)
        draw.line((right, y, right, min(y + dash, bottom)), fill=color, width=width)


def _titled(flow: _Flow, title: str, description: str, style: FragmentStyle) -> None:
    flow.text(title, 16, style.title_color, bold=True)
    flow.gap(8)
    if description:
        flow.text(description, 13, style.text_color)
        flow.gap(12)


def _layout_body(
    flow: _Flow,
    block: ContentBlock,
    style: FragmentStyle,
    diagram_image: Image.Image | None,
    expand_accordions: bool = True,
) -> None:
    if isinstance(block, TextBlock):
        text = strip_html(block.text).replace("**", "")
        if block.type is BlockType.POST_IT:
            text = f"{post_it_icon(block.text)} {text}"
        flow.text(text, 14, style.text_color)
    elif isinstance(block, HighlightBlock):
        flow.text(f"📌 {block.title}", 16, style.title_color, bold=True)
        flow.gap(12)
        flow.text(strip_html(block.text), 14, style.text_color)
    elif isinstance(block, DiagramBlock):
        _titled(flow, f"{DIAGRAM_ICONS[block.type]} {block.title}", block.description, style)
        if diagram_image is not None:
            flow.picture(diagram_image)
        elif block.definition.strip():
            flow.text(block.definition, 12, style.text_color)
    elif isinstance(block, ChartBlock):
        _titled(flow, f"📊 {block.title}", block.description, style)
        for point in block.points:
            flow.bar(point.label, point.value)
            flow.gap(12)
    elif isinstance(block, ComponentBlock):
        _titled(flow, f"⚛️ {block.title}", block.description, style)
        for i, item in enumerate(block.items, start=1):
            if expand_accordions:
                flow.item(f"{i}. {item.trigger}", strip_html(item.content), style)
            else:
                flow.text(f"{i}. {item.trigger} [+]", 14, style.title_color, bold=True)
            flow.gap(12)
        if not block.items and block.component != "Accordion":
            flow.text(block.component, 12, style.text_color)
    else:
        flow.text(strip_html(block.text), 14, style.text_color)


def build_fragment(
    block: ContentBlock,
    width_px: int,
    fonts: FontSet,
    diagram_image: Image.Image | None = None,
    scale: float = 1.2,
    expand_accordions: bool = True,
) -> Image.Image:
    """Draw ``block`` as a styled RGB fragment ``width_px`` pixels wide.

    Collapsed accordions show only their numbered triggers.
    """
    style = style_for(block)
    outer = round(OUTER_PADDING * scale)
    pad = round(style.padding * scale)
    accent = round(style.accent_width * scale)
    radius = round(style.radius * scale)
    box_width = width_px - 2 * outer

    flow = _Flow(max(1, box_width - 2 * pad - accent), scale, fonts)
    _layout_body(flow, block, style, diagram_image, expand_accordions)

    box_height = flow.height + 2 * pad
    image = Image.new("RGB", (width_px, box_height + 2 * outer), WHITE)
    box = (outer, outer, outer + box_width - 1, outer + box_height - 1)

    mask = Image.new("L", (box_width, box_height), 0)
    ImageDraw.Draw(mask).rounded_rectangle(
        (0, 0, box_width - 1, box_height - 1), radius=radius, fill=255
    )
    image.paste(_box_background((box_width, box_height), style), (outer, outer), mask)

    draw = ImageDraw.Draw(image)
    if style.accent is not None and accent:
        draw.rectangle((outer, outer, outer + accent - 1, box[3]), fill=style.accent)
    if style.border is not None and style.border_width:
        border = round(style.border_width * scale)
        if style.dashed:
            _dashed_border(draw, box, style.border, border, round(6 * scale))
        else:
            draw.rounded_rectangle(box, radius=radius, outline=style.border, width=border)

    flow.draw(image, outer + accent + pad, outer + pad)
    return image


class BlockRasterizer:
    """Default :class:`Rasterizer`: Pillow fragments plus an external diagram renderer."""

    def __init__(
        self,
        fonts: FontSet,
        options: RenderOptions,
        diagram_renderer: DiagramRenderer | None = None,
    ) -> None:
        self.fonts = fonts
        self.options = options
        self.diagrams = diagram_renderer or NullDiagramRenderer()

    async def capture(self, block: ContentBlock, content_width_mm: float) -> CapturedImage:
        diagram_image = None
        if isinstance(block, DiagramBlock) and block.definition.strip():
            diagram_image = await self.diagrams.render(block.definition)
            if diagram_image is None:
                logger.debug("Block %s drawn with its diagram source", block.tag)

        scale = self.options.device_scale
        width_px = round(content_width_mm * CSS_PX_PER_MM * scale)
        strategy = strategy_for(block)
        fragment = build_fragment(
            block,
            width_px,
            self.fonts,
            diagram_image,
            scale,
            expand_accordions=strategy.expand_accordions is not False,
        )

        max_width = round(content_width_mm * self.options.pixels_per_mm)
        if fragment.width > max_width:
            height = max(1, round(fragment.height * max_width / fragment.width))
            fragment = fragment.resize((max_width, height), Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        if style_for(block).lossless:
            fmt = "PNG"
            fragment.save(buffer, "PNG", optimize=True)
        else:
            fmt = "JPEG"
            fragment.save(buffer, "JPEG", quality=self.options.jpeg_quality)
        width, height = fragment.size
        fragment.close()
        return CapturedImage(data=buffer.getvalue(), width=width, height=height, format=fmt)


__all__ = [
    "BlockRasterizer",
    "CSS_PX_PER_MM",
    "CapturedImage",
    "FRAGMENT_STYLES",
    "FragmentStyle",
    "Rasterizer",
    "build_fragment",
    "style_for",
    "wrap_pixels",
]
