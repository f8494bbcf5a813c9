"""Extraction of the ``biblio:`` block from slide front matter.

Only a single nested mapping of scalar values is recognised::

    ---
    biblio:
      template: "ieee"
      numericalRefs: true
    ---

The block ends at the first line that is not indented, blank lines included.
Lists, multi-line scalars and deeper nesting are intentionally unsupported;
anything the extractor does not understand degrades to an empty result.
"""

from __future__ import annotations

import math
from pathlib import Path
import re
from typing import Any


_BIBLIO_KEY_RE = re.compile(r"^biblio:\s*$")
_NESTED_LINE_RE = re.compile(r"^\s{2,}\w")
_KEY_VALUE_RE = re.compile(r"^\s+(\w+):\s*(.+)$")
_DELIMITER = "---"


def split_header(text: str) -> list[str] | None:
    """Return the header lines between the leading ``---`` delimiters."""
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0] != _DELIMITER:
        return None
    for index, line in enumerate(lines[1:], start=1):
        if line == _DELIMITER:
            return lines[1:index]
    return None


def coerce_scalar(raw: str) -> str | int | float | bool:
    """Coerce a front-matter scalar following the quote/number/boolean rules."""
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    number = _as_number(value)
    if number is not None:
        return number
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def _as_number(value: str) -> int | float | None:
    if not value or "_" in value:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def extract_front_matter(text: str) -> dict[str, Any]:
    """Return ``{"biblio": {...}}`` when the document declares a biblio block."""
    header = split_header(text)
    if header is None:
        return {}

    biblio: dict[str, Any] | None = None
    in_biblio = False
    for line in header:
        if _BIBLIO_KEY_RE.match(line):
            in_biblio = True
            biblio = {}
            continue
        if not in_biblio:
            continue
        if _NESTED_LINE_RE.match(line):
            match = _KEY_VALUE_RE.match(line)
            if match and biblio is not None:
                biblio[match.group(1)] = coerce_scalar(match.group(2))
        elif not line[:1].isspace():
            in_biblio = False

    if biblio is None:
        return {}
    return {"biblio": biblio}


def read_front_matter(path: Path) -> dict[str, Any]:
    """Read ``path`` and extract its front matter, ignoring missing files."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return extract_front_matter(text)


__all__ = ["coerce_scalar", "extract_front_matter", "read_front_matter", "split_header"]
