"""Session-scoped citation lookups layered on top of a citation snapshot.

`CitationIndex` serves a pre-built snapshot and never suspends.
`LiveCitationIndex` starts empty and fills itself by fetching bibliography
files from the slide host. Both record which slides referenced which keys and
expose a monotonically increasing ``version`` that changes exactly when the
citations or the configuration change.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
import locale
import re
from typing import Any
from urllib.parse import urljoin

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .exceptions import BibliographyFetchError
from .fetch import BibliographyFetcher, with_raw_marker
from .formatting import CitationTemplate, format_entry, resolve_template
from .models import BiblioConfig, CitationDataSnapshot, CitationEntry
from .parsing import ParsedEntry, parse_bibliography
from .sources import DEFAULT_BIBLIOGRAPHY


Subscriber = Callable[[int], None]

_ABSOLUTE_URL_RE = re.compile(r"^(https?:)?//")


def _collation_key(entry: CitationEntry) -> str:
    return locale.strxfrm(entry.author.casefold())


class CitationIndex:
    """Citation lookups backed by an immutable snapshot."""

    def __init__(
        self,
        snapshot: CitationDataSnapshot | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        snapshot = snapshot or CitationDataSnapshot.empty()
        self._emitter = emitter or LoggingEmitter()
        self._config = snapshot.config
        self._citations: dict[str, CitationEntry] = dict(snapshot.citations)
        self._ordered_keys: list[str] = list(snapshot.ordered_keys)
        self._pages_by_key: dict[str, list[int]] = {}
        self._keys_by_page: dict[int, list[str]] = {}
        self._version = 0
        self._subscribers: list[Subscriber] = []

    # -- state ------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    @property
    def config(self) -> BiblioConfig:
        return self._config

    @property
    def ordered_keys(self) -> tuple[str, ...]:
        return tuple(self._ordered_keys)

    @property
    def citations_index(self) -> dict[str, int]:
        """Map each key to its 1-based citation number."""
        return {key: position for position, key in enumerate(self._ordered_keys, start=1)}

    def snapshot(self) -> CitationDataSnapshot:
        """Return an immutable copy of the current citations and config."""
        return CitationDataSnapshot(
            citations=self._citations,
            ordered_keys=tuple(self._ordered_keys),
            config=self._config,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` with the new version after every mutation."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _bump(self) -> None:
        self._version += 1
        for callback in list(self._subscribers):
            callback(self._version)

    # -- mutations --------------------------------------------------------

    def replace(self, snapshot: CitationDataSnapshot) -> None:
        """Swap in a rebuilt snapshot and forget the recorded page usage."""
        self._config = snapshot.config
        self._citations = dict(snapshot.citations)
        self._ordered_keys = list(snapshot.ordered_keys)
        self._pages_by_key.clear()
        self._keys_by_page.clear()
        self._bump()

    def update_config(self, values: Mapping[str, Any]) -> None:
        updated = self._config.merged(values)
        if updated == self._config:
            return
        self._config = updated
        self._bump()

    def _merge(self, entries: Iterable[CitationEntry]) -> None:
        changed = False
        for entry in entries:
            if entry.key not in self._citations:
                self._ordered_keys.append(entry.key)
            if self._citations.get(entry.key) != entry:
                self._citations[entry.key] = entry
                changed = True
        if changed:
            self._bump()

    def track_page(self, key: str | None, page: int | None) -> None:
        """Record that ``key`` is cited on slide ``page``.

        Slide numbers that are not positive integers are ignored with a warning.
        """
        if not key or page is None:
            return
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            self._emitter.warning(
                f"[citation-plugin] Ignoring invalid slide number {page!r} for '{key}'"
            )
            return
        pages = self._pages_by_key.setdefault(key, [])
        if page not in pages:
            pages.append(page)
        keys = self._keys_by_page.setdefault(page, [])
        if key not in keys:
            keys.append(key)

    # -- lookups ----------------------------------------------------------

    def get_citation(self, key: str) -> CitationEntry:
        """Return the entry for ``key`` or an error placeholder."""
        entry = self._citations.get(key)
        if entry is None:
            return CitationEntry.placeholder(key)
        return entry

    def get_all_citations(self) -> list[CitationEntry]:
        """Return every entry ordered by author; entries without author go last."""
        entries = [self._citations[key] for key in self._ordered_keys]
        authored = sorted((entry for entry in entries if entry.author), key=_collation_key)
        return authored + [entry for entry in entries if not entry.author]

    def get_pages_for_key(self, key: str) -> list[int]:
        return list(self._pages_by_key.get(key, ()))

    def get_citations_for_page(self, page: int) -> list[CitationEntry]:
        return [self.get_citation(key) for key in self._keys_by_page.get(page, ())]


class LiveCitationIndex(CitationIndex):
    """Citation index that fetches and formats bibliography files on demand."""

    def __init__(
        self,
        config: BiblioConfig | Mapping[str, Any] | None = None,
        *,
        fetcher: BibliographyFetcher | None = None,
        base_url: str = "/",
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        if not isinstance(config, BiblioConfig):
            config = BiblioConfig.from_mapping(config)
        super().__init__(CitationDataSnapshot.empty(config), emitter=emitter)
        self._fetcher = fetcher or BibliographyFetcher()
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._initialized = False
        self._load_task: asyncio.Task[bool] | None = None
        self._supplemental: dict[tuple[str, str], asyncio.Task[bool]] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def resolve_url(self, src: str) -> str:
        """Resolve a bibliography path against the site base URL."""
        if _ABSOLUTE_URL_RE.match(src):
            return src
        if src.startswith("/"):
            return f"{self._base_url}{src[1:]}"
        return urljoin(self._base_url, src)

    async def load(self) -> bool:
        """Fetch and index the primary bibliography once per session."""
        if self._initialized:
            return True
        if self._load_task is None or self._load_task.done():
            self._load_task = asyncio.create_task(self._load())
        return await self._load_task

    async def _load(self) -> bool:
        source = self.config.filename or f"/{DEFAULT_BIBLIOGRAPHY}"
        url = with_raw_marker(self.resolve_url(source))
        payload = await self._fetch(url, key=None)
        if not payload:
            return False
        template = resolve_template(self.config.template, self._emitter)
        merged = self._merge_parsed(parse_bibliography(payload, self._emitter), template)
        self._emitter.event(
            "citations_built",
            {
                "entries": len(merged),
                "errors": sum(1 for entry in merged if entry.error),
                "template": template.name,
            },
        )
        self._initialized = True
        return True

    def _merge_parsed(
        self,
        records: Iterable[ParsedEntry],
        template: CitationTemplate,
    ) -> list[CitationEntry]:
        """Format ``records`` against the current numbering and merge them.

        Keys already indexed keep their number; new keys are numbered after the
        existing ones in first-occurrence order, whatever order fetches complete.
        """
        latest: dict[str, ParsedEntry] = {}
        for parsed in records:
            latest[parsed.key] = parsed
        numbers = self.citations_index
        next_number = len(self._ordered_keys) + 1
        entries: list[CitationEntry] = []
        for key, parsed in latest.items():
            number = numbers.get(key)
            if number is None:
                number = next_number
                next_number += 1
            entries.append(format_entry(parsed, template, number, self._emitter))
        self._merge(entries)
        return entries

    async def add_citation(
        self,
        key: str | None,
        page: int | None = None,
        bib_file: str | None = None,
    ) -> str | None:
        """Track ``key`` on ``page`` and fetch it from ``bib_file`` when unknown."""
        if not key:
            return None
        self.track_page(key, page)
        if bib_file and key not in self._citations:
            request = (key, bib_file)
            task = self._supplemental.get(request)
            if task is None or task.done():
                task = asyncio.create_task(self._load_supplemental(key, bib_file))
                self._supplemental[request] = task
            await task
        return key

    async def _load_supplemental(self, key: str, bib_file: str) -> bool:
        url = with_raw_marker(self.resolve_url(bib_file))
        payload = await self._fetch(url, key=key)
        if not payload:
            return False
        matches = [parsed for parsed in parse_bibliography(payload, self._emitter) if parsed.key == key]
        if not matches:
            self._emitter.warning(f"[citation-plugin] Citation '{key}' not found in {url}")
            return False
        self._merge_parsed(matches[-1:], resolve_template(self.config.template, self._emitter))
        return True

    async def _fetch(self, url: str, *, key: str | None) -> str | None:
        self._emitter.event("bibliography_fetch", {"url": url, "key": key})
        scope = f" for {key}" if key else ""
        try:
            payload = await self._fetcher.fetch_text_async(url)
        except BibliographyFetchError as exc:
            self._emitter.error(f"[citation-plugin] Error loading bibliography{scope}: {exc}", exc)
            return None
        if payload is None:
            self._emitter.warning(f"[citation-plugin] Failed to load bibliography file{scope}: {url}")
        return payload


__all__ = ["CitationIndex", "LiveCitationIndex"]
