"""Citation index for Markdown slide decks.

The pipeline reads the ``biblio:`` front matter of the slides, collects the
primary bibliography plus any file referenced through ``bib="..."``
attributes, and formats every entry into a `CitationDataSnapshot`. The
snapshot is served either as a build-time artifact (`CitationDataModule`) or
rebuilt at runtime from fetched files (`LiveCitationIndex`).

```pycon
>>> from slidecite import BiblioConfig, build_citation_data
>>> payload = '''@article{doe2023,
...   author = {Doe, Jane},
...   title = {A Minimal Example},
...   journal = {Journal of Examples},
...   year = {2023},
... }'''
>>> snapshot = build_citation_data(payload, BiblioConfig())
>>> snapshot.citations["doe2023"].author
'Doe, J.'
>>> snapshot.citations_index
{'doe2023': 1}
```
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from .builder import build_citation_data, build_from_project
from .diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .exceptions import BibliographyFetchError, CitationFormattingError, SlideciteError
from .fetch import BibliographyFetcher
from .formatting import format_authors, format_entry
from .frontmatter import extract_front_matter
from .models import BiblioConfig, CitationDataSnapshot, CitationEntry
from .runtime import CitationIndex, LiveCitationIndex
from .sources import collect_sources
from .virtual_module import VIRTUAL_MODULE_ID, CitationDataModule


try:
    __version__ = _pkg_version("slidecite")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "VIRTUAL_MODULE_ID",
    "BiblioConfig",
    "BibliographyFetchError",
    "BibliographyFetcher",
    "CitationDataModule",
    "CitationDataSnapshot",
    "CitationEntry",
    "CitationFormattingError",
    "CitationIndex",
    "DiagnosticEmitter",
    "LiveCitationIndex",
    "LoggingEmitter",
    "NullEmitter",
    "SlideciteError",
    "__version__",
    "build_citation_data",
    "build_from_project",
    "collect_sources",
    "extract_front_matter",
    "format_authors",
    "format_entry",
]
