"""Discovery and loading of the bibliography files used by a slide deck."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
import re

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .models import BiblioConfig


DEFAULT_BIBLIOGRAPHY = "reference.bib"
DEFAULT_SLIDES = "slides.md"

_BIB_ATTRIBUTE_RE = re.compile(r"""\bbib=["']([^"']+)["']""")


@dataclass(frozen=True, slots=True)
class BibliographySource:
    """A bibliography file referenced by the deck, in load order."""

    path: Path
    primary: bool
    exists: bool


def scan_bibliography_attributes(text: str) -> list[str]:
    """Return the distinct ``bib="..."`` values in first-occurrence order."""
    found: dict[str, None] = {}
    for match in _BIB_ATTRIBUTE_RE.finditer(text):
        found.setdefault(match.group(1), None)
    return list(found)


def resolve_bibliography_path(root: Path, value: str) -> Path:
    """Resolve a bibliography reference against the project root."""
    relative = value[1:] if value.startswith("/") else value
    return (root / relative).resolve()


def primary_bibliography_path(root: Path, config: BiblioConfig) -> Path:
    return resolve_bibliography_path(root, config.filename or DEFAULT_BIBLIOGRAPHY)


def collect_source_files(
    root: Path | str,
    slides_text: str,
    config: BiblioConfig,
) -> list[BibliographySource]:
    """Return the primary bibliography followed by the files the slides reference."""
    root_path = Path(root).resolve()
    primary = primary_bibliography_path(root_path, config)
    sources = [BibliographySource(path=primary, primary=True, exists=primary.is_file())]
    for value in scan_bibliography_attributes(slides_text):
        resolved = resolve_bibliography_path(root_path, value)
        sources.append(BibliographySource(path=resolved, primary=False, exists=resolved.is_file()))
    return sources


def read_sources(
    sources: Sequence[BibliographySource],
    emitter: DiagnosticEmitter | None = None,
) -> str:
    """Concatenate the existing sources, warning about the missing ones."""
    emitter = emitter or LoggingEmitter()
    chunks: list[str] = []
    for source in sources:
        if not source.exists:
            label = "Bibliography file" if source.primary else "Additional bib file"
            emitter.warning(f"[citation-plugin] {label} not found: {source.path}")
            continue
        chunks.append(source.path.read_text(encoding="utf-8") + "\n")
    return "".join(chunks)


def collect_sources(
    root: Path | str,
    slides_text: str,
    config: BiblioConfig,
    emitter: DiagnosticEmitter | None = None,
) -> str:
    """Return the raw bibliography text for the deck, or ``""`` when none exists."""
    return read_sources(collect_source_files(root, slides_text, config), emitter)


__all__ = [
    "DEFAULT_BIBLIOGRAPHY",
    "DEFAULT_SLIDES",
    "BibliographySource",
    "collect_source_files",
    "collect_sources",
    "primary_bibliography_path",
    "read_sources",
    "resolve_bibliography_path",
    "scan_bibliography_attributes",
]
