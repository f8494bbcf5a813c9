"""Rich presentation helpers for the citation CLI."""

from __future__ import annotations

from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from ..diagnostics import NullEmitter
from ..models import CitationEntry
from ..parsing import parse_bibliography
from ..runtime import CitationIndex
from ..sources import BibliographySource


def count_entries(source: BibliographySource) -> int | None:
    if not source.exists:
        return None
    text = source.path.read_text(encoding="utf-8")
    return len(parse_bibliography(text, NullEmitter()))


def build_sources_table(sources: Sequence[BibliographySource]) -> Table:
    table = Table(
        title="Bibliography Files",
        box=box.SIMPLE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("File", overflow="fold")
    table.add_column("Role")
    table.add_column("Entries", justify="right")
    for source in sources:
        count = count_entries(source)
        role = "primary" if source.primary else "bib attribute"
        entries = str(count) if count is not None else "[yellow]missing[/]"
        table.add_row(str(source.path), role, entries)
    return table


def _pages_label(index: CitationIndex, entry: CitationEntry) -> str:
    pages = index.get_pages_for_key(entry.key)
    return ", ".join(str(page) for page in pages) if pages else "-"


def build_citations_table(index: CitationIndex) -> Table:
    table = Table(
        title=f"Citations ({index.config.template})",
        box=box.SIMPLE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("#", justify="right")
    table.add_column("Key", no_wrap=True)
    table.add_column("Citation")
    table.add_column("Author")
    table.add_column("Year", justify="right")
    table.add_column("Slides")

    numbers = index.citations_index
    for entry in index.get_all_citations():
        style = "red" if entry.error else None
        table.add_row(
            str(numbers[entry.key]),
            entry.key,
            entry.citation,
            entry.author or "-",
            str(entry.year) if entry.year != "" else "-",
            _pages_label(index, entry),
            style=style,
        )
    return table


def print_citation_overview(
    console: Console,
    sources: Sequence[BibliographySource],
    index: CitationIndex,
) -> None:
    console.print(build_sources_table(sources))
    if not index.ordered_keys:
        console.print("[dim]No citations found.[/]")
        return
    console.print(build_citations_table(index))
