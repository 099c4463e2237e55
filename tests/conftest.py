import io
import sys
from pathlib import Path

import pytest
from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from material2pdf.model.content import ContentBlock  # noqa: E402
from material2pdf.render.fonts import FontSet  # noqa: E402
from material2pdf.render.page_builder import PageBuilder  # noqa: E402
from material2pdf.render.paginator import PageCursor  # noqa: E402
from material2pdf.render.rasterizer import CapturedImage  # noqa: E402


class FakeRasterizer:
    """Rasterizer returning a fixed-size image, failing for selected block tags."""

    def __init__(
        self, width: int = 1700, height: int = 400, fail_tags: tuple[str, ...] = ()
    ) -> None:
        self.width = width
        self.height = height
        self.fail_tags = fail_tags
        self.captured: list[str] = []

    async def capture(self, block: ContentBlock, content_width_mm: float) -> CapturedImage:
        if block.tag in self.fail_tags:
            raise RuntimeError(f"capture of {block.tag} failed")
        self.captured.append(block.tag)
        return CapturedImage(
            data=_png(self.width, self.height), width=self.width, height=self.height, format="PNG"
        )


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (250, 240, 200)).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def fonts() -> FontSet:
    return FontSet()


@pytest.fixture
def builder() -> PageBuilder:
    return PageBuilder()


@pytest.fixture
def cursor(builder: PageBuilder) -> PageCursor:
    return PageCursor.for_builder(builder, 20.0)


@pytest.fixture
def fake_rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def make_rasterizer() -> type[FakeRasterizer]:
    return FakeRasterizer
