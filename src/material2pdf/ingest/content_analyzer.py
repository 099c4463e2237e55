"""Structural analysis of raw document text.

The analysis is the "expected" side of the post-generation comparison: it
counts headings, paragraphs and equations in the markdown form of a document
before anything is rendered.
"""

from __future__ import annotations

import logging
import re

from material2pdf.model.results import ContentAnalysis

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 100
MIN_PARAGRAPH_LENGTH = 20

_H1_RE = re.compile(r"^#[^#]")
_H2_RE = re.compile(r"^##[^#]")
_H3_RE = re.compile(r"^###[^#]")
_ANY_HEADING_RE = re.compile(r"^#{1,6}")

# Display math ($$...$$ or \[...\]) or a LaTeX command next to an operator
_EQUATION_RE = re.compile(
    r"\$\$.+?\$\$"
    r"|\\\[.+?\\\]"
    r"|\\[A-Za-z]+.*[=+\-^_<>]"
    r"|[=+\-^_<>].*\\[A-Za-z]+"
)


def analyze(content: str) -> ContentAnalysis:
    """Count structural markers in ``content``.

    Empty or whitespace-only input returns immediately with an ``empty
    content`` error. Content shorter than 100 characters is flagged ``content
    too short`` but still counted.
    """
    if not content or not content.strip():
        return ContentAnalysis(is_valid=False, errors=("empty content",))

    errors: list[str] = []
    warnings: list[str] = []

    if len(content.strip()) < MIN_CONTENT_LENGTH:
        errors.append("content too short")

    lines = content.split("\n")
    h1 = h2 = h3 = paragraphs = equations = 0

    for line in lines:
        if _H1_RE.match(line):
            h1 += 1
        elif _H2_RE.match(line):
            h2 += 1
        elif _H3_RE.match(line):
            h3 += 1
        else:
            stripped = line.strip()
            if len(stripped) > MIN_PARAGRAPH_LENGTH and not _ANY_HEADING_RE.match(stripped):
                paragraphs += 1
        if _EQUATION_RE.search(line):
            equations += 1

    if h1 + h2 + h3 == 0:
        warnings.append("no title found")
    if paragraphs == 0:
        warnings.append("no paragraph found")

    analysis = ContentAnalysis(
        total_characters=len(content),
        total_lines=len(lines),
        h1_count=h1,
        h2_count=h2,
        h3_count=h3,
        paragraph_count=paragraphs,
        equation_count=equations,
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
    logger.debug(
        "Analyzed %d chars: %d headings, %d paragraphs, %d equations",
        analysis.total_characters,
        analysis.heading_count,
        paragraphs,
        equations,
    )
    return analysis


__all__ = ["MIN_CONTENT_LENGTH", "analyze"]
