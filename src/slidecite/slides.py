"""Slide splitting and citation tag scanning for Markdown decks."""

from __future__ import annotations

from collections.abc import Iterator
import re

from .frontmatter import split_header
from .runtime import CitationIndex


_CITE_TAG_RE = re.compile(r"<Cite\b[^>]*?\bkey=[\"']([^\"']+)[\"']")
_FENCE_RE = re.compile(r"^(```|~~~)")
_FRONT_MATTER_KEY_RE = re.compile(r"^[A-Za-z_][\w-]*:(?:\s.*)?$")
_FRONT_MATTER_NESTED_RE = re.compile(r"^\s+\S")
_SEPARATOR = "---"


def split_slides(text: str) -> list[str]:
    """Split a deck on ``---`` separator lines, skipping the leading header.

    A separator followed by ``key: value`` lines and a closing ``---`` opens
    the next slide with its own front matter rather than an extra slide.
    """
    lines = text.lstrip("\ufeff").splitlines()
    header = split_header(text)
    if header is not None:
        lines = lines[len(header) + 2 :]

    slides: list[list[str]] = [[]]
    fence: str | None = None
    position = 0
    while position < len(lines):
        line = lines[position]
        position += 1
        marker = _FENCE_RE.match(line)
        if marker:
            fence = None if fence == marker.group(1) else fence or marker.group(1)
        if fence is None and line == _SEPARATOR:
            slides.append([])
            position = _skip_slide_front_matter(lines, position)
            continue
        slides[-1].append(line)
    return ["\n".join(slide) for slide in slides]


def _skip_slide_front_matter(lines: list[str], start: int) -> int:
    """Return the index after the front matter opened at ``start``, if any."""
    if start >= len(lines) or not _FRONT_MATTER_KEY_RE.match(lines[start]):
        return start
    for index in range(start + 1, len(lines)):
        line = lines[index]
        if line == _SEPARATOR:
            return index + 1
        if not (_FRONT_MATTER_KEY_RE.match(line) or _FRONT_MATTER_NESTED_RE.match(line)):
            return start
    return start


def scan_citation_keys(text: str) -> list[str]:
    """Return the keys of ``<Cite key="..."/>`` tags in document order."""
    return [match.group(1) for match in _CITE_TAG_RE.finditer(text)]


def iter_citation_usage(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(key, slide_number)`` pairs, numbering slides from 1."""
    for number, slide in enumerate(split_slides(text), start=1):
        for key in scan_citation_keys(slide):
            yield key, number


def track_deck(index: CitationIndex, text: str) -> list[tuple[str, int]]:
    """Record every citation of ``text`` in ``index``; return the unknown ones."""
    unknown: list[tuple[str, int]] = []
    for key, number in iter_citation_usage(text):
        index.track_page(key, number)
        if key not in index.ordered_keys:
            unknown.append((key, number))
    return unknown


__all__ = ["iter_citation_usage", "scan_citation_keys", "split_slides", "track_deck"]
