"""Cleanup of Mermaid diagram definitions produced by the generation step.

Generated definitions often carry Unicode arrows, parentheses inside node
labels and HTML-special characters, all of which make the Mermaid parser
reject the whole diagram. ``sanitize_diagram`` rewrites those constructs
into syntax Mermaid accepts.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_ARROWS = (
    ("↔", "<-->"),
    ("⇔", "<==>"),
    ("→", "-->"),
    ("←", "<--"),
    ("⇒", "==>"),
    ("⇐", "<=="),
)

_FENCE_OPEN_RE = re.compile(r"^```(?:mermaid)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")
_TYPE_SPACING_RE = re.compile(r"^(graph|flowchart)([A-Z]{2})", re.MULTILINE)
_BRACKET_LABEL_RE = re.compile(r"([A-Z]\[)([^\]]+)(\])")
_BRACE_LABEL_RE = re.compile(r"(\{)([^}]+)(\})")
_COMMA_IN_PARENS_RE = re.compile(r"\([^)]*,[^)]*\)")
_SPECIAL_CHARS_RE = re.compile(r"[&<>\"']")
_WHITESPACE_RE = re.compile(r"\s+")

_KIND_RE = re.compile(
    r"^\s*(graph|flowchart|mindmap|gantt|sequenceDiagram|classDiagram|stateDiagram"
    r"|erDiagram|pie|gitGraph)\b",
    re.MULTILINE,
)
_RENDERABLE_RE = re.compile(r"^(graph|flowchart|mindmap|gantt)\s")

# Arrows and super/subscripts the sanitizer does not rewrite
_RESIDUAL_RE = re.compile(r"[⟶⟵⟷➔➜➝➞↦↗↘↑↓⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻₀₁₂₃₄₅₆₇₈₉₊₋]")


def strip_fences(code: str) -> str:
    """Remove a surrounding ```` ```mermaid ```` fence, if any."""
    stripped = _FENCE_OPEN_RE.sub("", code.strip())
    return _FENCE_CLOSE_RE.sub("", stripped).strip()


def _clean_label(content: str, keep_parens: bool) -> str:
    if not keep_parens:
        content = content.replace("(", " - ").replace(")", "")
    content = _SPECIAL_CHARS_RE.sub("", content)
    return _WHITESPACE_RE.sub(" ", content).strip()


def _bracket_label(match: re.Match[str]) -> str:
    content = match.group(2)
    balanced = content.count("(") == content.count(")")
    keep = balanced and bool(_COMMA_IN_PARENS_RE.search(content))
    return f"{match.group(1)}{_clean_label(content, keep)}{match.group(3)}"


def _brace_label(match: re.Match[str]) -> str:
    return f"{match.group(1)}{_clean_label(match.group(2), False)}{match.group(3)}"


def sanitize_diagram(code: str) -> str:
    """Rewrite a Mermaid definition into syntax the Mermaid parser accepts."""
    sanitized = strip_fences(code)
    for symbol, replacement in _ARROWS:
        sanitized = sanitized.replace(symbol, replacement)
    sanitized = _TYPE_SPACING_RE.sub(r"\1 \2", sanitized)
    sanitized = _BRACKET_LABEL_RE.sub(_bracket_label, sanitized)
    sanitized = _BRACE_LABEL_RE.sub(_brace_label, sanitized)

    if not any(kind in sanitized for kind in ("graph", "flowchart", "mindmap")):
        logger.warning("Diagram definition has no recognised diagram type")
    return sanitized


def diagram_kind(code: str) -> str | None:
    """Return the declared diagram type (``graph``, ``mindmap``, ...) or None."""
    match = _KIND_RE.search(code)
    if match is None:
        logger.warning("Unrecognised diagram type: %r", code.strip()[:40])
        return None
    return match.group(1)


def is_renderable(code: str) -> bool:
    """True when the definition declares a supported type and has no residual symbols."""
    stripped = code.strip()
    if not _RENDERABLE_RE.match(stripped):
        return False
    return _RESIDUAL_RE.search(stripped) is None


__all__ = ["diagram_kind", "is_renderable", "sanitize_diagram", "strip_fences"]
