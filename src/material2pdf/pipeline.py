"""Top-level generation: content tree in, PDF file and result record out."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path
from typing import Any

from material2pdf.errors import ContentFormatError
from material2pdf.ingest.content_analyzer import analyze
from material2pdf.ingest.feature_logger import log_render_configuration
from material2pdf.ingest.markdown_converter import markdown_to_structured
from material2pdf.model.content import StructuredContent, to_markdown
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.model.results import PdfResult
from material2pdf.render.block_renderer import BlockRenderer
from material2pdf.render.diagrams import DiagramRenderer, build_diagram_renderer
from material2pdf.render.fonts import load_fonts
from material2pdf.render.footer import stamp_footers
from material2pdf.render.page_builder import PageBuilder
from material2pdf.render.paginator import PageCursor
from material2pdf.render.rasterizer import BlockRasterizer, Rasterizer
from material2pdf.render.text_blocks import emit_document_header
from material2pdf.validate.auto_fix import classify
from material2pdf.validate.diagnostics import diagnose

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None] | None


def slugify(text: str) -> str:
    s = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return s or "material"


def load_content(path: Path, title: str | None = None) -> tuple[StructuredContent, list[str]]:
    """Read a JSON content tree or a markdown file.

    Files ending in ``.json`` are parsed as a content tree; anything else is
    converted from markdown. Returns the tree and the conversion warnings.

    Raises:
        ContentFormatError: If the file cannot be read or interpreted
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ContentFormatError(str(exc), source=path) from exc

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ContentFormatError(f"invalid JSON: {exc}", source=path) from exc
        try:
            content = StructuredContent.from_dict(data)
        except ContentFormatError as exc:
            raise ContentFormatError(str(exc), source=path) from exc
        if title:
            content = StructuredContent(title=title, blocks=content.blocks)
        return content, []

    result = markdown_to_structured(text, title=title)
    return result.content, list(result.warnings)


def _output_path(output_dir: Path, title: str) -> Path:
    return output_dir / f"{slugify(title)}-{int(time.time() * 1000)}.pdf"


async def generate_visual_pdf(
    content: StructuredContent,
    title: str | None = None,
    options: RenderOptions | None = None,
    *,
    rasterizer: Rasterizer | None = None,
    diagram_renderer: DiagramRenderer | None = None,
    on_progress: ProgressCallback = None,
) -> PdfResult:
    """Render ``content`` to a PDF under ``options.output_dir``.

    Block-level failures become warnings on the result. Anything else that
    goes wrong (fonts, writing the file) is reported as ``success=False`` and
    no file is left behind.
    """
    options = options or RenderOptions()
    doc_title = title or content.title or "material"
    log_render_configuration(options)

    raw = to_markdown(content)
    analysis = analyze(raw)
    warnings = list(analysis.warnings)
    for error in analysis.errors:
        logger.warning("Content analysis: %s", error)

    output_path: Path | None = None
    try:
        with load_fonts(options) as fonts:
            width, height = options.page_size_mm
            builder = PageBuilder(width, height)
            cursor = PageCursor.for_builder(builder, options.margin_mm)
            if options.header:
                emit_document_header(doc_title, builder, cursor, fonts)

            if rasterizer is None:
                diagrams = diagram_renderer or build_diagram_renderer(options)
                rasterizer = BlockRasterizer(fonts, options, diagrams)
            renderer = BlockRenderer(rasterizer, fonts, on_progress, options=options)
            stats = await renderer.render(content.blocks, builder, cursor)
            # The "# title" line of the markdown form: drawn in the header and every footer
            stats.outline_headings += 1
            warnings.extend(renderer.warnings)

            stamp_footers(builder, doc_title, fonts, options.margin_mm)

            diagnostics = diagnose(builder, analysis, stats, raw)
            report = classify(diagnostics)

            output_path = _output_path(options.output_dir, doc_title)
            builder.save(output_path, title=doc_title)
    except Exception as exc:
        logger.error("PDF generation failed: %s", exc, exc_info=True)
        if output_path is not None:
            with suppress(OSError):
                output_path.unlink(missing_ok=True)
        return PdfResult(success=False, error=str(exc), warnings=warnings, analysis=analysis)

    return PdfResult(
        success=True,
        warnings=warnings,
        stats=stats,
        analysis=analysis,
        diagnostics=diagnostics,
        auto_fix=report,
        output_path=output_path,
    )


def generate_visual_pdf_sync(
    content: StructuredContent,
    title: str | None = None,
    options: RenderOptions | None = None,
    **kwargs: Any,
) -> PdfResult:
    return asyncio.run(generate_visual_pdf(content, title, options, **kwargs))


__all__ = ["generate_visual_pdf", "generate_visual_pdf_sync", "load_content", "slugify"]
