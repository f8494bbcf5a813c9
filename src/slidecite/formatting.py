"""Citation formatting shared by the build-time and runtime code paths.

`format_entry` is the single place where a parsed bibliography record becomes
a `CitationEntry`. Both the snapshot builder and the live index call it so the
two modes cannot drift apart.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from pybtex.plugin import find_plugin
from pybtex.style.formatting import BaseStyle

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .exceptions import CitationFormattingError
from .models import CitationEntry
from .parsing import Author, ParsedEntry


DEFAULT_TEMPLATE = "apa"


@dataclass(frozen=True, slots=True)
class CitationTemplate:
    """Maps a template name onto a pybtex style and an in-text citation form."""

    name: str
    style: str
    in_text: str


TEMPLATES: dict[str, CitationTemplate] = {
    "apa": CitationTemplate("apa", style="plain", in_text="author-year"),
    "harvard1": CitationTemplate("harvard1", style="plain", in_text="author-year"),
    "vancouver": CitationTemplate("vancouver", style="unsrt", in_text="numeric"),
    "ieee": CitationTemplate("ieee", style="unsrt", in_text="numeric"),
    "alpha": CitationTemplate("alpha", style="alpha", in_text="label"),
}


def resolve_template(
    name: str | None,
    emitter: DiagnosticEmitter | None = None,
) -> CitationTemplate:
    """Return the template registered under ``name``, falling back to APA."""
    candidate = (name or DEFAULT_TEMPLATE).strip().lower()
    template = TEMPLATES.get(candidate)
    if template is not None:
        return template
    (emitter or LoggingEmitter()).warning(
        f"[citation-plugin] Unknown citation template '{name}', using '{DEFAULT_TEMPLATE}'."
    )
    return TEMPLATES[DEFAULT_TEMPLATE]


def format_author(author: Author) -> str:
    initial = author.given[0] if author.given else ""
    return f"{author.family or ''}, {initial}."


def format_authors(authors: Sequence[Author] | None) -> str:
    """Render an author list as ``Family, I.``, ``A & B`` or ``A et al.``."""
    if not authors:
        return ""
    if len(authors) == 1:
        return format_author(authors[0])
    if len(authors) == 2:
        return f"{format_author(authors[0])} & {format_author(authors[1])}"
    return f"{format_author(authors[0])} et al."


def entry_year(parsed: ParsedEntry) -> str | int:
    """Return the issued year, else the raw ``year`` field, else ``""``."""
    if parsed.issued:
        date_parts = parsed.issued.get("date-parts") or []
        if date_parts and date_parts[0]:
            return date_parts[0][0]
    return parsed.year or ""


def _in_text_names(authors: Sequence[Author]) -> str:
    families = [author.family or "" for author in authors]
    if len(families) == 1:
        return families[0]
    if len(families) == 2:
        return f"{families[0]} & {families[1]}"
    return f"{families[0]} et al."


@lru_cache(maxsize=None)
def _load_style(name: str) -> BaseStyle:
    return find_plugin("pybtex.style.formatting", name)()


def format_citation(
    parsed: ParsedEntry,
    template: CitationTemplate,
    number: int,
) -> tuple[str, str]:
    """Return ``(citation, full_citation)`` for a single record."""
    if parsed.entry is None:
        raise CitationFormattingError(parsed.key, parsed.error or "entry could not be parsed")

    style = _load_style(template.style)
    formatted = next(iter(style.format_entries([parsed.entry])))
    full_citation = formatted.text.render_as("text")

    if template.in_text == "numeric":
        citation = f"[{number}]"
    elif template.in_text == "label":
        citation = f"[{formatted.label}]"
    else:
        names = _in_text_names(parsed.authors) if parsed.authors else parsed.title
        year = entry_year(parsed) or "n.d."
        citation = f"({names}, {year})" if names else f"({year})"
    return citation, full_citation


def format_entry(
    parsed: ParsedEntry,
    template: CitationTemplate,
    number: int,
    emitter: DiagnosticEmitter | None = None,
) -> CitationEntry:
    """Format ``parsed`` into a `CitationEntry`, never raising."""
    try:
        citation, full_citation = format_citation(parsed, template, number)
    except Exception as exc:  # noqa: BLE001
        (emitter or LoggingEmitter()).error(
            f'[citation-plugin] Error formatting citation "{parsed.key}": {exc}', exc
        )
        return CitationEntry.failed(parsed.key)

    return CitationEntry(
        key=parsed.key,
        citation=citation,
        full_citation=full_citation,
        title=parsed.title,
        author=format_authors(parsed.authors),
        year=entry_year(parsed),
    )


__all__ = [
    "DEFAULT_TEMPLATE",
    "TEMPLATES",
    "CitationTemplate",
    "entry_year",
    "format_author",
    "format_authors",
    "format_citation",
    "format_entry",
    "resolve_template",
]
