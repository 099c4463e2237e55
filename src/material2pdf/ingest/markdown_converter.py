"""Markdown to content-tree conversion.

Conversion runs in two phases. Phase one lifts fenced Mermaid blocks out of
the text (replacing them with placeholders) and detaches the trailing
references section, so neither is mangled by the line parser. Phase two
walks the remaining lines and builds typed blocks, reinserting diagrams where
their placeholders stood.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from material2pdf.errors import ContentFormatError
from material2pdf.ingest.diagram_sanitizer import is_renderable, sanitize_diagram
from material2pdf.model.content import (
    BlockType,
    ContentBlock,
    DiagramBlock,
    HighlightBlock,
    ReferenceListBlock,
    StructuredContent,
    TextBlock,
)

logger = logging.getLogger(__name__)

# Paragraph joining thresholds (characters)
SOFT_BREAK_LENGTH = 150
HARD_BREAK_LENGTH = 400

DEFAULT_TITLE = "Material Didático"

_MERMAID_FENCE_RE = re.compile(r"```mermaid[ \t]*\n(.*?)```", re.DOTALL | re.IGNORECASE)
_PLACEHOLDER = "@@DIAGRAM_{}@@"
_PLACEHOLDER_RE = re.compile(r"^@@DIAGRAM_(\d+)@@$")

_REFERENCES_HEADING_RE = re.compile(
    r"^#{1,2}\s*(?:📚\s*)?(Referências|Referencias|Bibliografia|References|Bibliography)\b.*$",
    re.MULTILINE | re.IGNORECASE,
)
_SECTION_END_RE = re.compile(r"^#{1,2}\s", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\d+[.)]\s*(.+)")
_BULLET_RE = re.compile(r"^[-*•]\s+(.+)")
_SUB_DETAIL_RE = re.compile(r"^[-*]\s*(?:URL|Type|Tipo|DOI)\s*:\s*(.+)", re.IGNORECASE)

_HEADING_RE = re.compile(r"^(#{1,4})\s+(.+)")
_QUOTE_RE = re.compile(r"^>\s?(.*)")
_LABEL_RE = re.compile(r"^\*\*([^*]+?):\*\*\s*(.*)")
_BOLD_RE = re.compile(r"\*\*")
_CHUNK_SPLIT_RE = re.compile(r"\n\s*\n+")

_HEADING_BY_LEVEL = {2: BlockType.H2, 3: BlockType.H3, 4: BlockType.H4}


@dataclass
class ConversionResult:
    content: StructuredContent
    warnings: list[str] = field(default_factory=list)


def extract_diagrams(markdown: str) -> tuple[str, list[str]]:
    """Replace fenced Mermaid blocks with placeholders.

    Returns the rewritten markdown and the sanitized definitions, indexed by
    placeholder number.
    """
    diagrams: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        diagrams.append(sanitize_diagram(match.group(1)))
        return f"\n\n{_PLACEHOLDER.format(len(diagrams) - 1)}\n\n"

    text = _MERMAID_FENCE_RE.sub(_replace, markdown)
    if diagrams:
        logger.debug("Extracted %d diagram block(s)", len(diagrams))
    return text, diagrams


def _reference_entries(section: str) -> list[str]:
    entries: list[str] = []
    for raw in section.split("\n"):
        line = raw.strip()
        if not line:
            continue
        detail = _SUB_DETAIL_RE.match(line)
        if detail and entries and raw[:1].isspace():
            entries[-1] = f"{entries[-1]} ({detail.group(1).strip()})"
            continue
        match = _NUMBERED_RE.match(line) or _BULLET_RE.match(line)
        if match:
            entries.append(_BOLD_RE.sub("", match.group(1)).strip())
        elif entries:
            entries[-1] = f"{entries[-1]} {_BOLD_RE.sub('', line)}"
    return entries


def split_references(markdown: str) -> tuple[str, list[str], str | None]:
    """Detach the references section.

    Returns ``(body, entries, heading)``; ``heading`` is None when the
    document has no references section.
    """
    match = _REFERENCES_HEADING_RE.search(markdown)
    if match is None:
        return markdown, [], None

    heading = match.group(0).lstrip("#").strip()
    rest = markdown[match.end() :]
    end = _SECTION_END_RE.search(rest)
    section = rest[: end.start()] if end else rest
    trailing = rest[end.start() :] if end else ""
    body = markdown[: match.start()].rstrip() + ("\n\n" + trailing if trailing else "")
    return body, _reference_entries(section), heading.replace("📚", "").strip()


class _BlockAccumulator:
    """Line-parser state: pending paragraph, list and quote runs."""

    def __init__(self) -> None:
        self.blocks: list[ContentBlock] = []
        self._paragraph: list[str] = []
        self._paragraph_len = 0
        self._items: list[str] = []
        self._quote: list[str] = []

    def flush(self) -> None:
        if self._paragraph:
            self.blocks.append(TextBlock(BlockType.PARAGRAPH, " ".join(self._paragraph)))
            self._paragraph = []
            self._paragraph_len = 0
        if self._items:
            text = "\n".join(f"• {item}" for item in self._items)
            self.blocks.append(TextBlock(BlockType.PARAGRAPH, text))
            self._items = []
        if self._quote:
            title = "Destaque"
            lines = list(self._quote)
            label = _LABEL_RE.match(lines[0])
            if label:
                title = label.group(1).strip()
                lines[0] = label.group(2)
            text = " ".join(line for line in lines if line).strip()
            self.blocks.append(HighlightBlock(title=title, text=_BOLD_RE.sub("", text)))
            self._quote = []

    def add_text(self, line: str) -> None:
        if self._items or self._quote:
            self.flush()
        if self._paragraph_len > SOFT_BREAK_LENGTH and line[:1].isupper():
            self.flush()
        self._paragraph.append(line)
        self._paragraph_len += len(line) + 1
        if self._paragraph_len > HARD_BREAK_LENGTH:
            self.flush()

    def add_item(self, item: str) -> None:
        if self._paragraph or self._quote:
            self.flush()
        self._items.append(item)

    def add_quote(self, line: str) -> None:
        if self._paragraph or self._items:
            self.flush()
        self._quote.append(line)

    def add_block(self, block: ContentBlock) -> None:
        self.flush()
        self.blocks.append(block)


def _fallback_blocks(body: str, warnings: list[str]) -> list[ContentBlock]:
    text = "\n".join(
        line for line in body.strip().split("\n") if not _HEADING_RE.match(line.strip())
    )
    chunks = [c.strip() for c in _CHUNK_SPLIT_RE.split(text) if len(c.strip()) > 50]
    if chunks:
        warnings.append("no markdown structure found; split into paragraph chunks")
        return [TextBlock(BlockType.PARAGRAPH, c) for c in chunks]
    lines = [line.strip() for line in text.split("\n") if len(line.strip()) > 20]
    if lines:
        warnings.append("no markdown structure found; split into line chunks")
        return [TextBlock(BlockType.PARAGRAPH, line) for line in lines]
    warnings.append("no markdown structure found; content kept as a single block")
    return [TextBlock(BlockType.PARAGRAPH, text.strip() or body.strip())]


def markdown_to_structured(markdown: str, title: str | None = None) -> ConversionResult:
    """Convert markdown into a :class:`StructuredContent` tree.

    Args:
        markdown: Markdown source, possibly with fenced Mermaid diagrams and
            a trailing references section
        title: Document title; defaults to the first ``#`` heading

    Returns:
        ConversionResult with the content tree and conversion warnings

    Raises:
        ContentFormatError: If the markdown is empty
    """
    if not markdown or not markdown.strip():
        raise ContentFormatError("empty markdown input")

    warnings: list[str] = []
    body, diagrams = extract_diagrams(markdown)
    body, references, references_title = split_references(body)

    acc = _BlockAccumulator()
    doc_title = title

    for raw in body.split("\n"):
        line = raw.strip()
        if not line:
            acc.flush()
            continue

        placeholder = _PLACEHOLDER_RE.match(line)
        if placeholder:
            index = int(placeholder.group(1))
            definition = diagrams[index]
            if not is_renderable(definition):
                warnings.append(f"diagram {index + 1} may not render cleanly")
            acc.add_block(DiagramBlock(type=BlockType.DIAGRAM, definition=definition))
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            text = _BOLD_RE.sub("", heading.group(2)).strip()
            if level == 1:
                acc.flush()
                if doc_title is None:
                    doc_title = text
                continue
            acc.add_block(TextBlock(_HEADING_BY_LEVEL[level], text))
            continue

        quote = _QUOTE_RE.match(line)
        if quote:
            acc.add_quote(quote.group(1).strip())
            continue

        label = _LABEL_RE.match(line)
        if label and label.group(2):
            acc.add_block(
                HighlightBlock(title=label.group(1).strip(), text=_BOLD_RE.sub("", label.group(2)))
            )
            continue

        item = _BULLET_RE.match(line)
        if item:
            acc.add_item(item.group(1).strip())
            continue

        acc.add_text(line)

    acc.flush()
    blocks = acc.blocks
    if not blocks and not references:
        blocks = _fallback_blocks(body, warnings)

    if references:
        blocks.append(
            ReferenceListBlock(items=tuple(references), title=references_title or "")
        )

    content = StructuredContent(title=doc_title or DEFAULT_TITLE, blocks=tuple(blocks))
    logger.info(
        "Converted markdown into %d block(s) (%d diagram(s), %d reference(s))",
        len(content.blocks),
        len(diagrams),
        len(references),
    )
    return ConversionResult(content=content, warnings=warnings)


__all__ = [
    "ConversionResult",
    "extract_diagrams",
    "markdown_to_structured",
    "split_references",
]
