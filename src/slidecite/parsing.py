"""Parsing helpers turning merged BibTeX text into per-entry records.

The merged payload is split into top-level ``@type{...}`` blocks before being
handed to pybtex one block at a time. Parsing block by block keeps duplicate
keys (pybtex rejects them inside a single database) and isolates syntax errors
to the entry that contains them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
import re
from typing import Any

from pybtex.database import Entry, Person
from pybtex.database.input import bibtex
from pybtex.exceptions import PybtexError
from pybtex.richtext import Text

from .diagnostics import DiagnosticEmitter, LoggingEmitter


_ENTRY_HEADER_RE = re.compile(r"@\s*([A-Za-z_][\w-]*)\s*([{(])")
_ENTRY_KEY_RE = re.compile(r"^@\s*[A-Za-z_][\w-]*\s*[{(]\s*([^,\s{}()]+)\s*,")
_SKIPPED_TYPES = {"comment", "preamble"}


@dataclass(frozen=True, slots=True)
class Author:
    """Structured author name in CSL terms."""

    family: str | None = None
    given: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedEntry:
    """A single bibliography record as yielded by :func:`parse_bibliography`."""

    key: str
    title: str = ""
    authors: tuple[Author, ...] = ()
    issued: Mapping[str, Any] | None = None
    year: str = ""
    entry: Entry | None = field(default=None, compare=False)
    error: str | None = None


@dataclass(frozen=True, slots=True)
class _Block:
    entry_type: str
    text: str


def iter_blocks(text: str) -> Iterator[_Block]:
    """Yield the top-level ``@type{...}`` blocks contained in ``text``."""
    position = 0
    while True:
        match = _ENTRY_HEADER_RE.search(text, position)
        if match is None:
            return
        entry_type = match.group(1).lower()
        end = _find_block_end(text, match.end(), match.group(2))
        yield _Block(entry_type=entry_type, text=text[match.start() : end])
        position = end


def _find_block_end(text: str, start: int, opener: str) -> int:
    closer = "}" if opener == "{" else ")"
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0 and closer == "}":
                return index + 1
            depth -= 1
        elif char == closer and depth == 0:
            return index + 1
    return len(text)


def latex_to_text(value: str) -> str:
    """Render a BibTeX field value as plain text."""
    try:
        return Text.from_latex(value).render_as("text").strip()
    except (PybtexError, ValueError):
        return value.replace("{", "").replace("}", "").strip()


def _person_to_author(person: Person) -> Author:
    family = " ".join([*person.prelast_names, *person.last_names])
    given = " ".join([*person.first_names, *person.middle_names])
    return Author(
        family=latex_to_text(family) or None,
        given=latex_to_text(given) or None,
    )


def _issued(fields: Mapping[str, str]) -> dict[str, Any] | None:
    year = fields.get("year", "").strip()
    if not year.isdigit():
        return None
    parts = [int(year)]
    month = fields.get("month", "").strip()
    if month.isdigit() and 1 <= int(month) <= 12:
        parts.append(int(month))
    return {"date-parts": [parts]}


def entry_from_pybtex(key: str, entry: Entry) -> ParsedEntry:
    """Project a pybtex entry onto the fields the citation index needs."""
    fields = {str(name).lower(): str(value) for name, value in entry.fields.items()}
    authors = tuple(_person_to_author(person) for person in entry.persons.get("author", []))
    return ParsedEntry(
        key=key,
        title=latex_to_text(fields.get("title", "")),
        authors=authors,
        issued=_issued(fields),
        year=fields.get("year", "").strip(),
        entry=entry,
    )


def parse_bibliography(
    text: str,
    emitter: DiagnosticEmitter | None = None,
) -> list[ParsedEntry]:
    """Parse merged BibTeX text, preserving source order and duplicate keys."""
    emitter = emitter or LoggingEmitter()
    parsed: list[ParsedEntry] = []
    macros: Any = None

    for block in iter_blocks(text):
        if block.entry_type in _SKIPPED_TYPES:
            continue

        parser = bibtex.Parser() if macros is None else bibtex.Parser(macros=macros)
        try:
            data = parser.parse_string(block.text)
        except PybtexError as exc:
            key_match = _ENTRY_KEY_RE.match(block.text)
            if block.entry_type == "string" or key_match is None:
                emitter.warning(f"[citation-plugin] Skipping unreadable bibliography block: {exc}")
                continue
            parsed.append(ParsedEntry(key=key_match.group(1), error=str(exc)))
            continue
        finally:
            macros = parser.macros

        for key, entry in data.entries.items():
            parsed.append(entry_from_pybtex(key, entry))

    return parsed


__all__ = [
    "Author",
    "ParsedEntry",
    "entry_from_pybtex",
    "iter_blocks",
    "latex_to_text",
    "parse_bibliography",
]
