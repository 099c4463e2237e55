"""Per-block-type rendering strategy table."""

from __future__ import annotations

from dataclasses import dataclass

from material2pdf.model.content import BlockType, ContentBlock


@dataclass(frozen=True, slots=True)
class RenderStrategy:
    render_as_image: bool
    expand_accordions: bool | None = None


NATIVE_TEXT = RenderStrategy(render_as_image=False)
RASTER = RenderStrategy(render_as_image=True)

RENDER_STRATEGIES: dict[BlockType, RenderStrategy] = {
    BlockType.H2: NATIVE_TEXT,
    BlockType.H3: NATIVE_TEXT,
    BlockType.H4: NATIVE_TEXT,
    BlockType.PARAGRAPH: NATIVE_TEXT,
    BlockType.POST_IT: RASTER,
    BlockType.HIGHLIGHT_BOX: RASTER,
    BlockType.FLOWCHART: RASTER,
    BlockType.MIND_MAP: RASTER,
    BlockType.DIAGRAM: RASTER,
    BlockType.CHART: RASTER,
    BlockType.COMPONENT: RenderStrategy(render_as_image=True, expand_accordions=True),
    BlockType.REFERENCES: NATIVE_TEXT,
}

# Adding a BlockType without a strategy must fail at import time
_missing = set(BlockType) - set(RENDER_STRATEGIES)
if _missing:
    raise RuntimeError(
        f"No render strategy for block types: {sorted(t.value for t in _missing)}"
    )


def strategy_for(block: ContentBlock) -> RenderStrategy:
    """Look up the strategy for ``block``; unknown tags render as native text."""
    if block.type is None:
        return NATIVE_TEXT
    return RENDER_STRATEGIES[block.type]


__all__ = ["NATIVE_TEXT", "RASTER", "RENDER_STRATEGIES", "RenderStrategy", "strategy_for"]
