"""Assembly of the citation snapshot from bibliography sources."""

from __future__ import annotations

from pathlib import Path

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .formatting import format_entry, resolve_template
from .frontmatter import extract_front_matter
from .models import BiblioConfig, CitationDataSnapshot, CitationEntry
from .parsing import parse_bibliography
from .sources import DEFAULT_SLIDES, collect_sources


def build_citation_data(
    raw_text: str,
    config: BiblioConfig | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> CitationDataSnapshot:
    """Parse ``raw_text`` and format every entry into an ordered snapshot.

    Keys keep the position of their first occurrence while the record parsed
    last provides the value, so numbering stays stable when a later file
    redefines a key.
    """
    config = config or BiblioConfig()
    emitter = emitter or LoggingEmitter()
    if not raw_text.strip():
        return CitationDataSnapshot.empty(config)

    template = resolve_template(config.template, emitter)
    positions: dict[str, int] = {}
    citations: dict[str, CitationEntry] = {}
    for parsed in parse_bibliography(raw_text, emitter):
        number = positions.setdefault(parsed.key, len(positions) + 1)
        citations[parsed.key] = format_entry(parsed, template, number, emitter)

    emitter.event(
        "citations_built",
        {
            "entries": len(citations),
            "errors": sum(1 for entry in citations.values() if entry.error),
            "template": template.name,
        },
    )
    return CitationDataSnapshot(
        citations=citations,
        ordered_keys=tuple(positions),
        config=config,
    )


def load_config(slides_text: str) -> BiblioConfig:
    """Return the bibliography configuration declared by the slides."""
    return BiblioConfig.from_mapping(extract_front_matter(slides_text).get("biblio"))


def read_slides(root: Path, slides: str = DEFAULT_SLIDES) -> str:
    try:
        return (root / slides).read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


def build_from_project(
    root: Path | str,
    *,
    slides: str = DEFAULT_SLIDES,
    emitter: DiagnosticEmitter | None = None,
) -> CitationDataSnapshot:
    """Run the full pipeline for the deck stored under ``root``."""
    root_path = Path(root).resolve()
    slides_text = read_slides(root_path, slides)
    config = load_config(slides_text)
    raw_text = collect_sources(root_path, slides_text, config, emitter)
    return build_citation_data(raw_text, config, emitter)


__all__ = ["build_citation_data", "build_from_project", "load_config", "read_slides"]
