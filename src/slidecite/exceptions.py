"""Exception hierarchy for the citation pipeline."""

from __future__ import annotations


class SlideciteError(RuntimeError):
    """Base exception for citation pipeline failures."""


class CitationFormattingError(SlideciteError):
    """Raised when a bibliography entry cannot be rendered with a template."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"Error formatting citation '{key}': {message}")
        self.key = key


class BibliographyFetchError(SlideciteError):
    """Raised when a bibliography file cannot be retrieved over HTTP."""


class ExportError(SlideciteError):
    """Raised when the slide export tooling cannot be prepared."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BibliographyFetchError",
    "CitationFormattingError",
    "ExportError",
    "SlideciteError",
    "exception_hint",
    "exception_messages",
]
