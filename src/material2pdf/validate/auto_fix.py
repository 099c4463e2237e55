"""Auto-fix advisor: sorts diagnostics into known fixes and remaining issues.

Nothing is re-rendered here; whether to run the pipeline again is up to
the caller.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from material2pdf.model.results import AutoFixReport, DiagnosticResult

logger = logging.getLogger(__name__)

# (pattern on the issue text, fix label); first match wins
FIX_CATEGORIES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"no new pages|page addition", re.IGNORECASE), "page-addition"),
    (re.compile(r"terminated early|page count", re.IGNORECASE), "page-break"),
    (re.compile(r"paragraph", re.IGNORECASE), "paragraph-counter"),
    (re.compile(r"heading", re.IGNORECASE), "heading-detection"),
)


def fix_label(diagnostic: DiagnosticResult) -> str | None:
    """Known fix for ``diagnostic``, or None."""
    if not diagnostic.can_auto_fix:
        return None
    for pattern, label in FIX_CATEGORIES:
        if pattern.search(diagnostic.issue):
            return label
    return None


def classify(diagnostics: Iterable[DiagnosticResult]) -> AutoFixReport:
    fixes: list[str] = []
    remaining: list[DiagnosticResult] = []
    for diagnostic in diagnostics:
        label = fix_label(diagnostic)
        if label is None:
            if diagnostic.can_auto_fix:
                logger.warning("No known fix for auto-fixable issue: %s", diagnostic.issue)
            remaining.append(diagnostic)
        elif label not in fixes:
            fixes.append(label)

    report = AutoFixReport(
        needs_regeneration=bool(fixes),
        fixes_applied=tuple(fixes),
        remaining_issues=tuple(remaining),
    )
    if fixes:
        logger.info("Auto-fix categories: %s", ", ".join(fixes))
    return report


__all__ = ["FIX_CATEGORIES", "classify", "fix_label"]
