"""Result records exchanged between the pipeline stages and returned to callers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# Characters per page used to estimate the expected page count
CHARS_PER_PAGE = 2000


@dataclass(frozen=True, slots=True)
class ContentAnalysis:
    """Expected document shape, computed once from the raw content."""

    total_characters: int = 0
    total_lines: int = 0
    h1_count: int = 0
    h2_count: int = 0
    h3_count: int = 0
    paragraph_count: int = 0
    equation_count: int = 0
    is_valid: bool = True
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def heading_count(self) -> int:
        return self.h1_count + self.h2_count + self.h3_count

    @property
    def expected_pages(self) -> int:
        return max(1, math.ceil(self.total_characters / CHARS_PER_PAGE))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_characters": self.total_characters,
            "total_lines": self.total_lines,
            "h1_count": self.h1_count,
            "h2_count": self.h2_count,
            "h3_count": self.h3_count,
            "paragraph_count": self.paragraph_count,
            "equation_count": self.equation_count,
            "expected_pages": self.expected_pages,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class RenderStats:
    """Counters accumulated by the block renderer.

    Every emitted block increments ``images_captured`` or
    ``native_text_blocks`` once, plus the counter of its category.
    """

    images_captured: int = 0
    native_text_blocks: int = 0
    diagrams: int = 0
    charts: int = 0
    post_its: int = 0
    highlight_boxes: int = 0
    components: int = 0
    paragraphs: int = 0
    headings: dict[str, int] = field(default_factory=lambda: {"h2": 0, "h3": 0, "h4": 0})
    references: int = 0
    # Heading lines of the markdown form that made it onto the page, title included
    outline_headings: int = 0
    pages_added: int = 0
    dedicated_pages: int = 0
    capture_failures: int = 0
    total_pages: int = 0
    capture_time_ms: float = 0.0

    @property
    def heading_count(self) -> int:
        return sum(self.headings.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "images_captured": self.images_captured,
            "native_text_blocks": self.native_text_blocks,
            "diagrams": self.diagrams,
            "charts": self.charts,
            "post_its": self.post_its,
            "highlight_boxes": self.highlight_boxes,
            "components": self.components,
            "paragraphs": self.paragraphs,
            "headings": dict(self.headings),
            "references": self.references,
            "outline_headings": self.outline_headings,
            "pages_added": self.pages_added,
            "dedicated_pages": self.dedicated_pages,
            "capture_failures": self.capture_failures,
            "total_pages": self.total_pages,
            "capture_time_ms": round(self.capture_time_ms, 1),
        }


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True, slots=True)
class DiagnosticResult:
    """One finding of the post-generation validator."""

    issue: str
    severity: Severity
    stage: str
    suggestion: str
    can_auto_fix: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "issue": self.issue,
            "severity": self.severity.value,
            "stage": self.stage,
            "suggestion": self.suggestion,
            "can_auto_fix": self.can_auto_fix,
        }


@dataclass(frozen=True, slots=True)
class AutoFixReport:
    needs_regeneration: bool = False
    fixes_applied: tuple[str, ...] = ()
    remaining_issues: tuple[DiagnosticResult, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "needs_regeneration": self.needs_regeneration,
            "fixes_applied": list(self.fixes_applied),
            "remaining_issues": [d.to_dict() for d in self.remaining_issues],
        }


@dataclass
class PdfResult:
    """Outcome of one generation run.

    A failed run carries ``error`` and no ``output_path``; no file is left
    behind in that case.
    """

    success: bool
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    stats: RenderStats | None = None
    analysis: ContentAnalysis | None = None
    diagnostics: list[DiagnosticResult] = field(default_factory=list)
    auto_fix: AutoFixReport | None = None
    output_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, dropping fields that were never set."""
        data: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.warnings:
            data["warnings"] = list(self.warnings)
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        if self.analysis is not None:
            data["analysis"] = self.analysis.to_dict()
        if self.diagnostics:
            data["diagnostics"] = [d.to_dict() for d in self.diagnostics]
        if self.auto_fix is not None:
            data["auto_fix"] = self.auto_fix.to_dict()
        if self.output_path is not None:
            data["output_path"] = str(self.output_path)
        return data


__all__ = [
    "AutoFixReport",
    "CHARS_PER_PAGE",
    "ContentAnalysis",
    "DiagnosticResult",
    "PdfResult",
    "RenderStats",
    "Severity",
]
