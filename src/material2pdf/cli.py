"""CLI interface for material2pdf."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from material2pdf import __version__
from material2pdf.errors import ContentFormatError
from material2pdf.ingest.content_analyzer import analyze as analyze_content
from material2pdf.model.content import to_markdown
from material2pdf.model.pipeline_options import RenderOptions
from material2pdf.pipeline import generate_visual_pdf, load_content
from material2pdf.ui.progress import ProgressReporter

app = typer.Typer(
    name="material2pdf",
    help="Render structured teaching material into paginated PDF documents.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


InputArgument = Annotated[
    Path,
    typer.Argument(
        help="Content tree (.json) or markdown file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]


@app.command()
def render(
    source: InputArgument,
    title: Annotated[
        str | None,
        typer.Option("--title", help="Document title (default: taken from the content)"),
    ] = None,
    out_dir: Annotated[
        Path,
        typer.Option("--out-dir", help="Output directory for the PDF (default: dist)"),
    ] = Path("dist"),
    page_format: Annotated[
        str,
        typer.Option("--page-format", help="Paper size: 'a4' or 'letter'"),
    ] = "a4",
    margin: Annotated[
        float,
        typer.Option("--margin", help="Page margin in millimetres (default: 20)"),
    ] = 20.0,
    diagrams: Annotated[
        str,
        typer.Option(
            "--diagrams",
            help=(
                "Diagram rendering: 'auto' (Mermaid CLI when installed, else source text), "
                "'mermaid-cli' (required) or 'off'"
            ),
        ),
    ] = "auto",
    diagram_timeout: Annotated[
        float,
        typer.Option("--diagram-timeout", help="Seconds allowed for one diagram render"),
    ] = 10.0,
    mermaid_executable: Annotated[
        str,
        typer.Option("--mermaid-executable", help="Name or path of the Mermaid CLI"),
    ] = "mmdc",
    unicode_font: Annotated[
        Path | None,
        typer.Option(
            "--unicode-font",
            help="TrueType font with Unicode math coverage (e.g. DejaVuSans.ttf)",
        ),
    ] = None,
    jpeg_quality: Annotated[
        int,
        typer.Option("--jpeg-quality", help="JPEG quality for opaque raster blocks (1-95)"),
    ] = 85,
    header: Annotated[
        bool,
        typer.Option("--header/--no-header", help="Draw the document header (default: yes)"),
    ] = True,
    dedicated_pages: Annotated[
        bool,
        typer.Option(
            "--dedicated-pages/--inline-images",
            help="Give large, tall or diagram images a page of their own (default: inline)",
        ),
    ] = False,
    justify: Annotated[
        bool,
        typer.Option("--justify/--ragged", help="Justify paragraph lines (default: ragged)"),
    ] = False,
    json_report: Annotated[
        Path | None,
        typer.Option("--json-report", help="Write the generation result as JSON to this path"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log rendering decisions"),
    ] = False,
) -> None:
    """
    Render a content tree or markdown file into a PDF.

    Examples:

        # Render a JSON content tree
        material2pdf render aula.json

        # Markdown input, letter paper, no external diagram renderer
        material2pdf render notes.md --page-format letter --diagrams off
    """
    _configure_logging(verbose)
    try:
        options = RenderOptions.from_cli(
            page_format=page_format,
            margin=margin,
            diagrams=diagrams,
            diagram_timeout=diagram_timeout,
            mermaid_executable=mermaid_executable,
            unicode_font=unicode_font,
            output_dir=out_dir,
            jpeg_quality=jpeg_quality,
            header=header,
            dedicated_image_pages=dedicated_pages,
            justify_text=justify,
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    try:
        content, conversion_warnings = load_content(source, title)
    except ContentFormatError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    typer.echo(f"📄 Rendering: {source}")
    typer.echo(f"📖 Title: {title or content.title}")
    typer.echo(f"🧱 Blocks: {len(content.blocks)}")
    typer.echo(f"📁 Output Directory: {out_dir}")

    with ProgressReporter() as pr:
        result = asyncio.run(
            generate_visual_pdf(content, title, options, on_progress=pr.emit)
        )
    result.warnings[:0] = conversion_warnings

    if json_report is not None:
        json_report.parent.mkdir(parents=True, exist_ok=True)
        json_report.write_text(
            json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )

    for warning in result.warnings:
        typer.echo(f"⚠️  {warning}")

    if not result.success:
        typer.echo(f"\n❌ Generation failed: {result.error}")
        raise typer.Exit(1)

    for diagnostic in result.diagnostics:
        typer.echo(
            f"🔎 [{diagnostic.severity.value}] {diagnostic.stage}: {diagnostic.issue}"
        )
    if result.auto_fix is not None and result.auto_fix.needs_regeneration:
        typer.echo(f"🔧 Known fixes: {', '.join(result.auto_fix.fixes_applied)}")

    pages = result.stats.total_pages if result.stats else 0
    typer.echo(f"\n✅ Wrote {pages} page(s) to {result.output_path}")


@app.command()
def analyze(
    source: InputArgument,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log analysis details"),
    ] = False,
) -> None:
    """Print the structural analysis of a content file without rendering it."""
    _configure_logging(verbose)
    try:
        content, _ = load_content(source)
    except ContentFormatError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    result = analyze_content(to_markdown(content))

    table = Table(title=f"Analysis: {content.title}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Characters", str(result.total_characters))
    table.add_row("Lines", str(result.total_lines))
    table.add_row("H1 headings", str(result.h1_count))
    table.add_row("H2 headings", str(result.h2_count))
    table.add_row("H3 headings", str(result.h3_count))
    table.add_row("Paragraphs", str(result.paragraph_count))
    table.add_row("Equations", str(result.equation_count))
    table.add_row("Expected pages", str(result.expected_pages))
    table.add_row("Valid", "yes" if result.is_valid else "no")
    Console().print(table)

    for error in result.errors:
        typer.echo(f"❌ {error}")
    for warning in result.warnings:
        typer.echo(f"⚠️  {warning}")


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"material2pdf version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback for --version flag."""
    if value:
        typer.echo(f"material2pdf version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    material2pdf - Render structured teaching material into paginated PDFs.

    Each block of the content tree is drawn either as native vector text
    (headings, paragraphs, references) or as a rasterized fragment (post-its,
    highlight boxes, diagrams, charts, components). After rendering, the
    result is checked against the analysis of the source text.

    For detailed usage, run: material2pdf render --help
    """
    pass


if __name__ == "__main__":
    app()
