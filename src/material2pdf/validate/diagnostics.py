"""Post-generation validation.

Compares the analyzer's expectations with what the renderer actually counted
and scans the raw text for content the built-in fonts handle poorly. The
checks are pure: the same inputs always produce the same list.
"""

from __future__ import annotations

import logging
import re

from material2pdf.model.results import ContentAnalysis, DiagnosticResult, RenderStats, Severity
from material2pdf.render.fonts import SYMBOL_FALLBACKS
from material2pdf.render.page_builder import PageBuilder

logger = logging.getLogger(__name__)

LONG_DOCUMENT_CHARS = 5000

MATH_SYMBOLS = frozenset(SYMBOL_FALLBACKS)

_CITATION_RE = re.compile(r"\[\d+\]")


def _symbols_in(text: str) -> list[str]:
    return sorted({char for char in text if char in MATH_SYMBOLS})


def _symbol_count(text: str) -> int:
    return sum(1 for char in text if char in MATH_SYMBOLS)


def diagnose(
    pages: PageBuilder | int,
    analysis: ContentAnalysis,
    stats: RenderStats,
    raw_content: str,
) -> list[DiagnosticResult]:
    """Run every post-generation check.

    Args:
        pages: The finished builder, or its page count
        analysis: Analyzer output for the raw content
        stats: Counters accumulated while rendering
        raw_content: Markdown form of the rendered document

    Returns:
        Diagnostics in check order; empty when nothing was found
    """
    page_count = pages if isinstance(pages, int) else pages.page_count
    expected_pages = analysis.expected_pages
    results: list[DiagnosticResult] = []

    if expected_pages > 2 and page_count == 1:
        results.append(
            DiagnosticResult(
                issue="Page count far below estimate: rendering likely terminated early "
                f"(1 page, about {expected_pages} expected)",
                severity=Severity.CRITICAL,
                stage="pagination",
                suggestion="Check the page-break logic of long text blocks",
                can_auto_fix=True,
            )
        )

    if analysis.paragraph_count > 0 and stats.paragraphs == 0:
        results.append(
            DiagnosticResult(
                issue=f"No paragraphs rendered ({analysis.paragraph_count} found in the source)",
                severity=Severity.CRITICAL,
                stage="text-rendering",
                suggestion="Check the paragraph counter of the text path",
                can_auto_fix=True,
            )
        )

    expected_headings = analysis.heading_count
    rendered_headings = stats.outline_headings
    if rendered_headings < expected_headings / 2:
        results.append(
            DiagnosticResult(
                issue=f"Headings missing: {rendered_headings} rendered, "
                f"{expected_headings} expected",
                severity=Severity.HIGH,
                stage="heading-detection",
                suggestion="Check heading detection in the markdown conversion",
                can_auto_fix=True,
            )
        )

    if expected_pages > 1 and stats.pages_added == 0:
        results.append(
            DiagnosticResult(
                issue="No new pages were added",
                severity=Severity.CRITICAL,
                stage="page-addition",
                suggestion="Check that overflowing blocks start a new page",
                can_auto_fix=True,
            )
        )

    symbols = _symbols_in(raw_content)
    if symbols:
        results.append(
            DiagnosticResult(
                issue=f"Unicode math symbols present: {' '.join(symbols)}",
                severity=Severity.MEDIUM,
                stage="symbol-scan",
                suggestion="Symbols are normalized to text unless a Unicode font is configured",
            )
        )

    if analysis.total_characters > LONG_DOCUMENT_CHARS and analysis.equation_count == 0:
        results.append(
            DiagnosticResult(
                issue="Long document without detected equations",
                severity=Severity.LOW,
                stage="equation-detection",
                suggestion="Check manually whether formulas were written as plain text",
            )
        )

    citations = _CITATION_RE.findall(raw_content)
    if citations:
        results.append(
            DiagnosticResult(
                issue=f"{len(citations)} bracketed citation marker(s) found",
                severity=Severity.LOW,
                stage="reference-format",
                suggestion="Citations are expected to match the numbered reference list",
            )
        )

    if symbols:
        results.append(
            DiagnosticResult(
                issue=f"{_symbol_count(raw_content)} math symbol occurrence(s)",
                severity=Severity.LOW,
                stage="symbol-count",
                suggestion="Configure a Unicode font to keep the original symbols",
            )
        )

    for diagnostic in results:
        logger.debug(
            "Diagnostic [%s] %s: %s", diagnostic.severity.value, diagnostic.stage, diagnostic.issue
        )
    return results


__all__ = ["LONG_DOCUMENT_CHARS", "MATH_SYMBOLS", "diagnose"]
