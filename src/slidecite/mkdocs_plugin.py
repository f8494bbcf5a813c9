"""MkDocs plugin publishing the citation snapshot of a slide deck."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any

from mkdocs.config import config_options
from mkdocs.config.defaults import MkDocsConfig
from mkdocs.exceptions import PluginError
from mkdocs.livereload import LiveReloadServer
from mkdocs.plugins import BasePlugin
from mkdocs.structure.files import Files
from mkdocs.structure.pages import Page
from mkdocs.utils import log

from .diagnostics import LoggingEmitter
from .runtime import CitationIndex
from .slides import track_deck
from .virtual_module import CitationDataModule


class _MkdocsEmitter(LoggingEmitter):
    """Emitter that surfaces diagnostics through MkDocs' logger."""

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        if name == "citations_built":
            self._logger.info(
                "slidecite: %s citation(s) indexed", payload.get("entries", 0)
            )
            return
        super().event(name, payload)


class CitationPlugin(BasePlugin):
    """Build the citation index for the deck and ship it with the site."""

    config_scheme = (
        ("enabled", config_options.Type(bool, default=True)),
        ("slides", config_options.Type(str, default="slides.md")),
        ("artifact_dir", config_options.Type(str, default="assets/slidecite")),
    )

    def __init__(self) -> None:
        super().__init__()
        self._enabled = True
        self._is_serve = False
        self._module: CitationDataModule | None = None
        self._index: CitationIndex | None = None
        self._emitter: LoggingEmitter | None = None

    # -- MkDocs lifecycle -------------------------------------------------

    def on_startup(self, command: str, dirty: bool) -> None:  # pragma: no cover - hook
        self._is_serve = command == "serve"

    def on_config(self, config: MkDocsConfig) -> MkDocsConfig:
        self._enabled = bool(self.config.get("enabled", True))
        if not self._enabled:
            return config

        docs_dir = Path(config.docs_dir).resolve()
        self._emitter = _MkdocsEmitter(logger_obj=log, debug_enabled=self._is_serve)
        self._module = CitationDataModule(
            docs_dir,
            slides=self.config.get("slides") or "slides.md",
            emitter=self._emitter,
        )
        return config

    def on_pre_build(self, config: MkDocsConfig) -> None:
        if not self._enabled or self._module is None:
            return
        # Every build, including live-reload rebuilds, starts from a fresh snapshot.
        self._module.invalidate()
        self._index = CitationIndex(self._module.snapshot())

    def on_serve(
        self,
        server: LiveReloadServer,
        config: MkDocsConfig,
        builder: Any,
    ) -> LiveReloadServer:
        if not self._enabled or self._module is None:
            return server
        watched = self._module.watched_path()
        if watched.exists():
            server.watch(str(watched))
        elif watched.parent.is_dir():
            # The bibliography may be created while serving.
            server.watch(str(watched.parent), recursive=False)
        else:
            log.warning("slidecite: cannot watch missing bibliography %s", watched)
        return server

    def on_page_markdown(
        self,
        markdown: str,
        page: Page,
        config: MkDocsConfig,
        files: Files,
    ) -> str:
        del config, files
        if not self._enabled or self._index is None or self._module is None:
            return markdown
        if PurePosixPath(page.file.src_path) != PurePosixPath(self._module.slides):
            return markdown

        for key, slide in track_deck(self._index, markdown):
            log.warning("slidecite: unknown citation key '%s' on slide %d", key, slide)
        return markdown

    def on_post_build(self, config: MkDocsConfig) -> None:
        if not self._enabled:
            return
        if self._module is None:
            raise PluginError("slidecite plugin is not initialised correctly.")
        target = Path(config.site_dir) / (self.config.get("artifact_dir") or "assets/slidecite")
        for path in self._module.write_artifact(target):
            log.debug("slidecite: wrote %s", path)

    # -- Helpers ----------------------------------------------------------

    @property
    def index(self) -> CitationIndex | None:
        """Session index holding the slide usage recorded during the build."""
        return self._index


__all__ = ["CitationPlugin"]
