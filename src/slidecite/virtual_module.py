"""Build-time citation artifact exposed to the slide bundle.

The bundler asks for ``virtual:citation-data``; the module answers with a
JavaScript module whose default export is the snapshot. The snapshot is cached
until the watched bibliography changes, at which point the whole snapshot is
dropped and every reload listener receives a full-reload payload.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import json
from pathlib import Path
from typing import Any

from .builder import build_from_project, load_config, read_slides
from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .models import CitationDataSnapshot
from .sources import DEFAULT_SLIDES, primary_bibliography_path


VIRTUAL_MODULE_ID = "virtual:citation-data"
RESOLVED_VIRTUAL_MODULE_ID = "\0" + VIRTUAL_MODULE_ID
FULL_RELOAD: Mapping[str, str] = {"type": "full-reload"}
ARTIFACT_STEM = "citation-data"

ReloadListener = Callable[[Mapping[str, str]], None]


class CitationDataModule:
    """Provider of the ``virtual:citation-data`` snapshot for one project."""

    def __init__(
        self,
        root: Path | str,
        *,
        slides: str = DEFAULT_SLIDES,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.slides = slides
        self._emitter = emitter or LoggingEmitter()
        self._snapshot: CitationDataSnapshot | None = None
        self._listeners: list[ReloadListener] = []

    def resolve_id(self, module_id: str) -> str | None:
        if module_id == VIRTUAL_MODULE_ID:
            return RESOLVED_VIRTUAL_MODULE_ID
        return None

    def load(self, module_id: str) -> str | None:
        """Return the JavaScript source for the resolved virtual module."""
        if module_id != RESOLVED_VIRTUAL_MODULE_ID:
            return None
        return render_module(self.snapshot())

    def snapshot(self) -> CitationDataSnapshot:
        if self._snapshot is None:
            self._snapshot = build_from_project(self.root, slides=self.slides, emitter=self._emitter)
        return self._snapshot

    def invalidate(self) -> None:
        self._snapshot = None

    def watched_path(self) -> Path:
        """Return the primary bibliography declared by the slides."""
        config = load_config(read_slides(self.root, self.slides))
        return primary_bibliography_path(self.root, config)

    def add_reload_listener(self, listener: ReloadListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def handle_change(self, changed_path: Path | str) -> bool:
        """Invalidate the snapshot when the watched bibliography changed."""
        if Path(changed_path).resolve() != self.watched_path():
            return False
        self.invalidate()
        self._emitter.event("snapshot_invalidated", {"path": str(changed_path)})
        for listener in list(self._listeners):
            listener(FULL_RELOAD)
        return True

    def write_artifact(self, directory: Path | str) -> list[Path]:
        """Write the snapshot as JSON and as an ES module under ``directory``."""
        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        snapshot = self.snapshot()
        json_path = target / f"{ARTIFACT_STEM}.json"
        module_path = target / f"{ARTIFACT_STEM}.js"
        _write_if_changed(json_path, snapshot.to_json(indent=2) + "\n")
        _write_if_changed(module_path, render_module(snapshot) + "\n")
        return [json_path, module_path]


def render_module(snapshot: CitationDataSnapshot) -> str:
    payload: dict[str, Any] = snapshot.to_dict()
    return f"export default {json.dumps(payload, ensure_ascii=False)};"


def _write_if_changed(path: Path, payload: str) -> None:
    try:
        existing = path.read_text(encoding="utf-8")
    except OSError:
        existing = None
    if existing == payload:
        return
    path.write_text(payload, encoding="utf-8")


__all__ = [
    "ARTIFACT_STEM",
    "FULL_RELOAD",
    "RESOLVED_VIRTUAL_MODULE_ID",
    "VIRTUAL_MODULE_ID",
    "CitationDataModule",
    "render_module",
]
