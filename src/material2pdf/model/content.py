"""Content tree data structures (the typed blocks of a teaching material).

The tree is produced upstream by an AI generation step as JSON of the shape
``{"titulo_geral": str, "conteudo": [block, ...]}``. Each block carries a
``tipo`` tag; the tags are kept verbatim so JSON produced for the web viewer
can be fed to the renderer unchanged.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from material2pdf.errors import ContentFormatError


class BlockType(Enum):
    """Recognised block tags."""

    H2 = "h2"
    H3 = "h3"
    H4 = "h4"
    PARAGRAPH = "paragrafo"
    POST_IT = "post_it"
    HIGHLIGHT_BOX = "caixa_de_destaque"
    FLOWCHART = "fluxograma"
    MIND_MAP = "mapa_mental"
    DIAGRAM = "diagrama"
    CHART = "grafico"
    COMPONENT = "componente_react"
    REFERENCES = "referencias"


HEADING_TYPES = frozenset({BlockType.H2, BlockType.H3, BlockType.H4})
DIAGRAM_TYPES = frozenset({BlockType.FLOWCHART, BlockType.MIND_MAP, BlockType.DIAGRAM})

# Body heading depth (h2 is the first level below the document title)
HEADING_LEVELS: dict[BlockType, int] = {BlockType.H2: 1, BlockType.H3: 2, BlockType.H4: 3}


@dataclass(frozen=True, slots=True)
class TextBlock:
    """Headings, paragraphs and post-it callouts: a single text payload."""

    type: BlockType
    text: str

    @property
    def tag(self) -> str:
        return self.type.value


@dataclass(frozen=True, slots=True)
class HighlightBlock:
    title: str
    text: str
    type: BlockType = BlockType.HIGHLIGHT_BOX

    @property
    def tag(self) -> str:
        return self.type.value


@dataclass(frozen=True, slots=True)
class DiagramBlock:
    """Flowchart, mind map or generic diagram backed by a Mermaid definition."""

    type: BlockType
    title: str = ""
    description: str = ""
    definition: str = ""

    @property
    def tag(self) -> str:
        return self.type.value


@dataclass(frozen=True, slots=True)
class ChartPoint:
    label: str
    value: float


@dataclass(frozen=True, slots=True)
class ChartBlock:
    title: str = ""
    description: str = ""
    kind: str = "barras"  # barras | pizza | linha
    points: tuple[ChartPoint, ...] = ()
    type: BlockType = BlockType.CHART

    @property
    def tag(self) -> str:
        return self.type.value


@dataclass(frozen=True, slots=True)
class AccordionItem:
    trigger: str
    content: str


@dataclass(frozen=True, slots=True)
class ComponentBlock:
    """Embedded interactive component; only ``Accordion`` has a print form."""

    component: str
    title: str = ""
    description: str = ""
    props: Mapping[str, Any] = field(default_factory=dict)
    type: BlockType = BlockType.COMPONENT

    @property
    def tag(self) -> str:
        return self.type.value

    @property
    def items(self) -> tuple[AccordionItem, ...]:
        raw = self.props.get("items") or []
        result: list[AccordionItem] = []
        for item in raw:
            if isinstance(item, Mapping):
                result.append(
                    AccordionItem(
                        trigger=str(item.get("trigger", "")),
                        content=str(item.get("content", "")),
                    )
                )
        return tuple(result)


@dataclass(frozen=True, slots=True)
class ReferenceListBlock:
    items: tuple[str, ...] = ()
    title: str = ""
    type: BlockType = BlockType.REFERENCES

    @property
    def tag(self) -> str:
        return self.type.value


@dataclass(frozen=True, slots=True)
class UnknownBlock:
    """Block with a tag outside :class:`BlockType`; rendered as plain text."""

    tag: str
    text: str = ""
    payload: Mapping[str, Any] = field(default_factory=dict)
    type: None = None


ContentBlock = (
    TextBlock
    | HighlightBlock
    | DiagramBlock
    | ChartBlock
    | ComponentBlock
    | ReferenceListBlock
    | UnknownBlock
)


@dataclass(frozen=True, slots=True)
class StructuredContent:
    title: str
    blocks: tuple[ContentBlock, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StructuredContent:
        if not isinstance(data, Mapping):
            raise ContentFormatError(
                f"expected a mapping at top level, got {type(data).__name__}"
            )
        raw_blocks = data.get("conteudo")
        if not isinstance(raw_blocks, list):
            raise ContentFormatError("missing 'conteudo' list")
        blocks: list[ContentBlock] = []
        for index, raw in enumerate(raw_blocks, start=1):
            if not isinstance(raw, Mapping):
                raise ContentFormatError(f"block {index} is not a mapping")
            blocks.append(parse_block(raw))
        return cls(title=str(data.get("titulo_geral") or ""), blocks=tuple(blocks))

    @classmethod
    def from_json(cls, text: str) -> StructuredContent:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ContentFormatError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _chart_points(raw: Any) -> tuple[ChartPoint, ...]:
    # First key is the label, second the value (matches the web chart renderer)
    points: list[ChartPoint] = []
    if not isinstance(raw, list):
        return ()
    for item in raw:
        if not isinstance(item, Mapping) or not item:
            continue
        values = list(item.values())
        label = _str(values[0])
        try:
            value = float(values[1]) if len(values) > 1 and values[1] is not None else 0.0
        except (TypeError, ValueError):
            value = 0.0
        points.append(ChartPoint(label=label, value=value))
    return tuple(points)


def parse_block(raw: Mapping[str, Any]) -> ContentBlock:
    """Build the typed block for a JSON mapping; unknown tags become UnknownBlock."""
    tag = _str(raw.get("tipo"))
    try:
        block_type = BlockType(tag)
    except ValueError:
        return UnknownBlock(tag=tag, text=_str(raw.get("texto")), payload=dict(raw))

    if block_type in HEADING_TYPES or block_type in (BlockType.PARAGRAPH, BlockType.POST_IT):
        return TextBlock(type=block_type, text=_str(raw.get("texto")))
    if block_type is BlockType.HIGHLIGHT_BOX:
        return HighlightBlock(title=_str(raw.get("titulo")), text=_str(raw.get("texto")))
    if block_type in DIAGRAM_TYPES:
        return DiagramBlock(
            type=block_type,
            title=_str(raw.get("titulo")),
            description=_str(raw.get("descricao")),
            definition=_str(raw.get("definicao_mermaid")),
        )
    if block_type is BlockType.CHART:
        return ChartBlock(
            title=_str(raw.get("titulo")),
            description=_str(raw.get("descricao")),
            kind=_str(raw.get("tipo_grafico")) or "barras",
            points=_chart_points(raw.get("dados")),
        )
    if block_type is BlockType.COMPONENT:
        props = raw.get("props")
        return ComponentBlock(
            component=_str(raw.get("componente")),
            title=_str(raw.get("titulo")),
            description=_str(raw.get("descricao")),
            props=dict(props) if isinstance(props, Mapping) else {},
        )
    items = raw.get("itens") or []
    return ReferenceListBlock(
        items=tuple(_str(i) for i in items if _str(i).strip()),
        title=_str(raw.get("titulo")),
    )


_RESIDUAL_HEADING_RE = re.compile(r"^(#{2,4})\s+(.+)")
_HASHES_BY_TYPE = {2: BlockType.H2, 3: BlockType.H3, 4: BlockType.H4}
_LEADING_HASHES_RE = re.compile(r"^#{1,4}\s+", re.MULTILINE)
_HTML_TAG_RE = re.compile(r"<[^>]*>")


def normalize_residual_markdown(block: ContentBlock) -> ContentBlock:
    """Turn text blocks whose text still starts with ``##``..``####`` into headings."""
    if not isinstance(block, TextBlock):
        return block
    match = _RESIDUAL_HEADING_RE.match(block.text)
    if not match:
        return block
    return TextBlock(type=_HASHES_BY_TYPE[len(match.group(1))], text=match.group(2).strip())


def sanitize_text(text: str) -> tuple[str, bool]:
    """Strip stray heading hashes; report whether ``**bold**`` markers are present."""
    return _LEADING_HASHES_RE.sub("", text), "**" in text


def strip_html(text: str) -> str:
    return _HTML_TAG_RE.sub("", text)


def post_it_icon(text: str) -> str:
    lower = text.lower()
    if "atenção" in lower or "cuidado" in lower:
        return "⚠️"
    if "dica" in lower:
        return "💡"
    if "pense" in lower or "reflexão" in lower:
        return "🤔"
    if "aplicação" in lower or "prática" in lower:
        return "🌍"
    return "💡"


DIAGRAM_ICONS = {BlockType.FLOWCHART: "📊", BlockType.MIND_MAP: "🧠", BlockType.DIAGRAM: "📐"}


def has_outline_heading(block: ContentBlock) -> bool:
    """Whether the markdown form of ``block`` carries a level 1-3 heading line.

    Kept in step with :func:`to_markdown`; the validator compares rendered
    blocks against headings counted in that markdown.
    """
    if isinstance(block, TextBlock):
        return block.type in (BlockType.H2, BlockType.H3)
    if isinstance(block, (DiagramBlock, ChartBlock, ReferenceListBlock)):
        return True
    return isinstance(block, ComponentBlock) and block.component == "Accordion"


def to_markdown(content: StructuredContent) -> str:
    """Render the content tree back to markdown.

    The markdown form is what the content analyzer and the post-generation
    validator inspect, so JSON input and markdown input are measured alike.
    """
    parts: list[str] = [f"# {content.title}\n\n"]
    for block in content.blocks:
        if isinstance(block, TextBlock):
            if block.type is BlockType.H2:
                parts.append(f"## {block.text}\n\n")
            elif block.type is BlockType.H3:
                parts.append(f"### {block.text}\n\n")
            elif block.type is BlockType.H4:
                parts.append(f"#### {block.text}\n\n")
            elif block.type is BlockType.PARAGRAPH:
                parts.append(f"{strip_html(block.text)}\n\n")
            else:
                parts.append(f"> {post_it_icon(block.text)} **{strip_html(block.text)}**\n\n")
        elif isinstance(block, HighlightBlock):
            parts.append(f"> **📌 {block.title}**\n> {strip_html(block.text)}\n\n")
        elif isinstance(block, DiagramBlock):
            parts.append(f"### {DIAGRAM_ICONS[block.type]} {block.title}\n\n")
            if block.description:
                parts.append(f"{block.description}\n\n")
            parts.append(f"```mermaid\n{block.definition}\n```\n\n")
        elif isinstance(block, ChartBlock):
            parts.append(f"### 📊 {block.title}\n\n")
            if block.description:
                parts.append(f"{block.description}\n\n")
            if block.points:
                parts.append("**Dados do gráfico:**\n\n")
                for point in block.points:
                    parts.append(f"- {point.label}: {point.value:g}\n")
                parts.append("\n")
        elif isinstance(block, ComponentBlock):
            if block.component == "Accordion":
                parts.append(f"### ⚛️ {block.title}\n\n")
                if block.description:
                    parts.append(f"{block.description}\n\n")
                for i, item in enumerate(block.items, start=1):
                    parts.append(f"**{i}. {item.trigger}**\n\n{strip_html(item.content)}\n\n")
        elif isinstance(block, ReferenceListBlock):
            parts.append(f"## 📚 {block.title or 'Referências Bibliográficas'}\n\n")
            for ref in block.items:
                parts.append(f"- {ref}\n")
            parts.append("\n")
        elif block.text:
            parts.append(f"{strip_html(block.text)}\n\n")
    return "".join(parts)


__all__ = [
    "AccordionItem",
    "BlockType",
    "ChartBlock",
    "ChartPoint",
    "ComponentBlock",
    "ContentBlock",
    "DIAGRAM_ICONS",
    "DIAGRAM_TYPES",
    "DiagramBlock",
    "HEADING_LEVELS",
    "HEADING_TYPES",
    "HighlightBlock",
    "ReferenceListBlock",
    "StructuredContent",
    "TextBlock",
    "UnknownBlock",
    "has_outline_heading",
    "normalize_residual_markdown",
    "parse_block",
    "post_it_icon",
    "sanitize_text",
    "strip_html",
    "to_markdown",
]
