"""Diagram rendering through the Mermaid CLI.

The renderer awaits the ``mmdc`` subprocess itself, so a diagram is captured
only once rendering has finished, and a hung renderer is killed after the
configured timeout instead of being captured half drawn.
"""

from __future__ import annotations

import asyncio
import contextlib
import io
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from PIL import Image

from material2pdf.errors import DiagramRenderError
from material2pdf.ingest.diagram_sanitizer import diagram_kind
from material2pdf.ingest.feature_logger import log_error_policy, log_feature_availability
from material2pdf.model.pipeline_options import DiagramMode, RenderOptions

logger = logging.getLogger(__name__)


class DiagramRenderer(Protocol):
    async def render(self, definition: str) -> Image.Image | None:
        """Return the rendered diagram, or None when no image can be produced."""
        ...


class NullDiagramRenderer:
    """Renderer that never produces an image; fragments show the source instead."""

    async def render(self, definition: str) -> Image.Image | None:
        return None


class MermaidCliRenderer:
    """Render Mermaid definitions with the ``mmdc`` executable."""

    def __init__(
        self,
        executable: str = "mmdc",
        timeout: float = 10.0,
        background: str = "white",
        scale: float = 1.2,
        required: bool = False,
    ) -> None:
        self.executable = executable
        self.required = required
        self.timeout = timeout
        self.background = background
        self.scale = scale
        self._resolved: str | None = None
        self._checked = False

    def available(self) -> bool:
        if not self._checked:
            self._resolved = shutil.which(self.executable)
            self._checked = True
            if self._resolved is None:
                log_feature_availability(
                    "Mermaid CLI", False, f"'{self.executable}' not found on PATH"
                )
            else:
                log_feature_availability("Mermaid CLI", True)
        return self._resolved is not None

    async def render(self, definition: str) -> Image.Image | None:
        """Render ``definition`` to a Pillow image.

        When the renderer is not ``required``, a missing executable or a failed
        render returns None and the caller falls back to the source text.

        Raises:
            DiagramRenderError: If a required renderer is missing, exits
                non-zero, produces no output or exceeds the timeout
        """
        kind = diagram_kind(definition)
        if not self.available():
            if self.required:
                raise DiagramRenderError(kind, f"'{self.executable}' not found")
            return None
        try:
            return await self._run(definition, kind)
        except DiagramRenderError as exc:
            if self.required:
                raise
            log_error_policy("Diagrams", "render_failed", "fallback", str(exc))
            return None

    async def _run(self, definition: str, kind: str | None) -> Image.Image:
        with tempfile.TemporaryDirectory(prefix="material2pdf-") as tmp:
            source = Path(tmp) / "diagram.mmd"
            output = Path(tmp) / "diagram.png"
            source.write_text(definition, encoding="utf-8")
            cmd = [
                self._resolved or self.executable,
                "-i",
                str(source),
                "-o",
                str(output),
                "-b",
                self.background,
                "-s",
                f"{self.scale:g}",
            ]
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                raise DiagramRenderError(kind, str(exc)) from exc
            try:
                _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            except TimeoutError as exc:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
                raise DiagramRenderError(kind, timeout=self.timeout) from exc

            if proc.returncode != 0:
                detail = stderr.decode("utf-8", "replace").strip() or f"exit {proc.returncode}"
                raise DiagramRenderError(kind, detail)
            if not output.is_file():
                raise DiagramRenderError(kind, "renderer produced no output")

            # Load fully before the temporary directory is removed
            image = Image.open(io.BytesIO(output.read_bytes()))
            image.load()

        logger.debug("Rendered %s diagram at %dx%d px", kind or "unknown", *image.size)
        return image


def build_diagram_renderer(options: RenderOptions) -> DiagramRenderer:
    """Select the diagram renderer for ``options.diagram_mode``."""
    if options.diagram_mode is DiagramMode.OFF:
        log_feature_availability("Mermaid CLI", False, "disabled by configuration")
        return NullDiagramRenderer()
    return MermaidCliRenderer(
        executable=options.mermaid_executable,
        timeout=options.diagram_timeout,
        scale=options.device_scale,
        required=options.diagram_mode is DiagramMode.MERMAID_CLI,
    )


__all__ = [
    "DiagramRenderer",
    "MermaidCliRenderer",
    "NullDiagramRenderer",
    "build_diagram_renderer",
]
