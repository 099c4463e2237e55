"""Centralized feature decision logging for the material2pdf pipeline.

This module logs configuration, per-block rendering decisions and error
policies for debugging. It does not overlap with the ProgressReporter, which
handles user-facing progress.
"""

from __future__ import annotations

import logging
from typing import Any

from material2pdf.model.pipeline_options import RenderOptions

logger = logging.getLogger(__name__)


def log_render_configuration(options: RenderOptions) -> None:
    """Log the rendering configuration for debugging.

    Args:
        options: Render options to log
    """
    width, height = options.page_size_mm
    logger.info("Render configuration:")
    logger.info(
        "  Page: %s (%.1f x %.1f mm), margin %.1f mm",
        options.page_format.value,
        width,
        height,
        options.margin_mm,
    )
    logger.info(
        "  Capture: scale %.2f, %.1f px/mm, JPEG quality %d",
        options.device_scale,
        options.pixels_per_mm,
        options.jpeg_quality,
    )
    logger.info(
        "  Diagrams: %s (timeout %.1fs)", options.diagram_mode.value, options.diagram_timeout
    )
    if options.unicode_font is not None:
        logger.info("  Unicode font: %s", options.unicode_font)


def log_feature_availability(feature: str, available: bool, reason: str | None = None) -> None:
    """Log feature availability status.

    Args:
        feature: Name of the feature (e.g., "Mermaid CLI", "Unicode font")
        available: Whether the feature is available
        reason: Optional reason for unavailability
    """
    if available:
        logger.info("%s: Available", feature)
    else:
        if reason:
            logger.warning("%s: Unavailable - %s", feature, reason)
        else:
            logger.warning("%s: Unavailable", feature)


def log_block_decision(
    index: int, block_tag: str, decision: str, context: dict[str, Any] | None = None
) -> None:
    """Log the rendering path chosen for a block.

    Args:
        index: 1-based block position in the document
        block_tag: Block tag (e.g., "paragrafo", "post_it")
        decision: The decision made (e.g., "image", "text", "page-break")
        context: Optional context information
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        logger.debug("Block %d (%s): %s (%s)", index, block_tag, decision, context_str)
    else:
        logger.debug("Block %d (%s): %s", index, block_tag, decision)


def log_error_policy(
    feature: str, error_type: str, action: str, details: str | None = None
) -> None:
    """Log error handling policy decisions.

    Args:
        feature: Name of the feature encountering the error
        error_type: Type of error (e.g., "capture_failed", "renderer_timeout")
        action: Action taken (e.g., "skip", "fallback", "continue", "abort")
        details: Optional additional details
    """
    if details:
        logger.warning("%s error policy: %s -> %s (%s)", feature, error_type, action, details)
    else:
        logger.warning("%s error policy: %s -> %s", feature, error_type, action)


__all__ = [
    "log_block_decision",
    "log_error_policy",
    "log_feature_availability",
    "log_render_configuration",
]
