"""Typer application wiring for the slidecite CLI."""

from __future__ import annotations

from pathlib import Path

from rich.traceback import Traceback
import typer

from ..builder import build_citation_data, load_config, read_slides
from ..exceptions import ExportError
from ..export import load_export_config, run_export
from ..runtime import CitationIndex
from ..slides import track_deck
from ..sources import DEFAULT_SLIDES, BibliographySource, collect_source_files, read_sources
from .bibliography import print_citation_overview
from .diagnostics import CliEmitter
from .state import debug_enabled, emit_error, emit_warning, get_cli_state, set_cli_state


app = typer.Typer(
    help="Resolve bibliography citations for Markdown slide decks.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)

RootArgument = typer.Argument(
    Path("."),
    help="Project root containing the slides and bibliography files.",
    exists=True,
    file_okay=False,
    dir_okay=True,
    resolve_path=True,
)
SlidesOption = typer.Option(
    DEFAULT_SLIDES,
    "--slides",
    "-s",
    help="Slides file, relative to the project root.",
)


@app.callback()
def _app_root(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Show full tracebacks when an unexpected error occurs.",
    ),
) -> None:
    ctx.obj = set_cli_state(verbosity=verbose, debug=debug)


def _build_index(root: Path, slides: str) -> tuple[list[BibliographySource], CitationIndex]:
    emitter = CliEmitter()
    slides_text = read_slides(root, slides)
    if not slides_text:
        emit_warning(f"Slides file not found: {root / slides}")
    config = load_config(slides_text)
    sources = collect_source_files(root, slides_text, config)
    snapshot = build_citation_data(read_sources(sources, emitter), config, emitter)
    index = CitationIndex(snapshot)
    for key, slide in track_deck(index, slides_text):
        emit_warning(f"Unknown citation key '{key}' on slide {slide}")
    return sources, index


@app.command(name="build")
def build(
    root: Path = RootArgument,
    slides: str = SlidesOption,
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the citation data to this JSON file instead of stdout.",
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Build the citation snapshot and print it as JSON."""
    _, index = _build_index(root, slides)
    payload = index.snapshot().to_json(indent=2)
    if output is None:
        typer.echo(payload)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload + "\n", encoding="utf-8")
    get_cli_state().err_console.print(f"Citation data written to {output}")


@app.command(name="list")
def list_citations(
    root: Path = RootArgument,
    slides: str = SlidesOption,
) -> None:
    """Show bibliography sources and formatted citations with their slides."""
    sources, index = _build_index(root, slides)
    print_citation_overview(get_cli_state().console, sources, index)


@app.command(name="export")
def export(
    root: Path = RootArgument,
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Export configuration file (defaults to slidecite-export.toml).",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Export the deck to PDF and PPTX with the Slidev CLI."""
    try:
        config = load_export_config(root, config_file)
    except ExportError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    produced = run_export(root, config)
    console = get_cli_state().console
    for fmt, path in produced.items():
        console.print(f"{fmt.upper()} exported to {path}")
    console.print("Export process completed!")


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover
        state = get_cli_state()
        if state.show_tracebacks:
            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
