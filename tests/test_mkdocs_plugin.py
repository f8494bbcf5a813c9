from pathlib import Path
import json
import textwrap
from types import SimpleNamespace

import pytest

from slidecite import mkdocs_plugin
from slidecite.mkdocs_plugin import CitationPlugin


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")
    return path


SLIDES = """
---
biblio:
  template: ieee
---
# Intro <Cite key="a" />
---
<Cite key="missing" />
"""


def _plugin(options: dict[str, object] | None = None) -> CitationPlugin:
    plugin = CitationPlugin()
    errors, warnings = plugin.load_config(options or {})
    assert not errors
    assert not warnings
    return plugin


def _page(src_path: str) -> SimpleNamespace:
    return SimpleNamespace(file=SimpleNamespace(src_path=src_path))


def test_plugin_builds_index_and_writes_artifact(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    docs_dir = tmp_path / "docs"
    slides = _write(docs_dir, "slides.md", SLIDES)
    _write(
        docs_dir,
        "reference.bib",
        "@article{a, author = {Smith, John}, title = {First}, journal = {J}, year = {2020}}",
    )
    site_dir = tmp_path / "site"
    config = SimpleNamespace(docs_dir=str(docs_dir), site_dir=str(site_dir))

    recorded: list[str] = []

    def capture(message: str, *args: object) -> None:
        recorded.append(message % args if args else message)

    monkeypatch.setattr(mkdocs_plugin.log, "warning", capture)

    plugin = _plugin()
    plugin.on_config(config)
    plugin.on_pre_build(config)
    markdown = slides.read_text(encoding="utf-8")

    assert plugin.on_page_markdown(markdown, _page("slides.md"), config, None) == markdown
    plugin.on_post_build(config)

    assert plugin.index is not None
    assert plugin.index.get_pages_for_key("a") == [1]
    assert recorded == ["slidecite: unknown citation key 'missing' on slide 2"]

    artifact = site_dir / "assets" / "slidecite" / "citation-data.json"
    payload = json.loads(artifact.read_text(encoding="utf-8"))
    assert payload["citations"]["a"]["citation"] == "[1]"
    assert (artifact.parent / "citation-data.js").exists()


def test_plugin_ignores_other_pages(tmp_path: Path) -> None:
    docs_dir = tmp_path / "docs"
    _write(docs_dir, "slides.md", SLIDES)
    config = SimpleNamespace(docs_dir=str(docs_dir), site_dir=str(tmp_path / "site"))

    plugin = _plugin({"slides": "slides.md"})
    plugin.on_config(config)
    plugin.on_pre_build(config)
    plugin.on_page_markdown('<Cite key="a" />', _page("index.md"), config, None)

    assert plugin.index is not None
    assert plugin.index.get_pages_for_key("a") == []


def test_plugin_rebuilds_snapshot_on_each_build(tmp_path: Path) -> None:
    docs_dir = tmp_path / "docs"
    _write(docs_dir, "slides.md", SLIDES)
    bib = _write(docs_dir, "reference.bib", "@misc{a, title = {First}, year = {2020}}")
    config = SimpleNamespace(docs_dir=str(docs_dir), site_dir=str(tmp_path / "site"))

    plugin = _plugin()
    plugin.on_config(config)
    plugin.on_pre_build(config)
    assert plugin.index is not None
    assert plugin.index.ordered_keys == ("a",)

    bib.write_text(bib.read_text(encoding="utf-8") + "@misc{b, title = {Second}}\n", encoding="utf-8")
    plugin.on_pre_build(config)

    assert plugin.index.ordered_keys == ("a", "b")


def test_disabled_plugin_is_inert(tmp_path: Path) -> None:
    config = SimpleNamespace(docs_dir=str(tmp_path), site_dir=str(tmp_path / "site"))

    plugin = _plugin({"enabled": False})
    plugin.on_config(config)
    plugin.on_pre_build(config)
    plugin.on_post_build(config)

    assert plugin.index is None
    assert not (tmp_path / "site").exists()


class RecordingServer:
    def __init__(self) -> None:
        self.watched: list[tuple[str, bool]] = []

    def watch(self, path: str, func: object = None, *, recursive: bool = True) -> None:
        self.watched.append((path, recursive))


def test_serve_watches_existing_bibliography(tmp_path: Path) -> None:
    docs_dir = tmp_path / "docs"
    _write(docs_dir, "slides.md", SLIDES)
    bib = _write(docs_dir, "reference.bib", "@misc{a, title = {First}, year = {2020}}")
    config = SimpleNamespace(docs_dir=str(docs_dir), site_dir=str(tmp_path / "site"))
    server = RecordingServer()

    plugin = _plugin()
    plugin.on_config(config)
    assert plugin.on_serve(server, config, None) is server

    assert server.watched == [(str(bib.resolve()), True)]


def test_serve_watches_directory_of_missing_bibliography(tmp_path: Path) -> None:
    docs_dir = tmp_path / "docs"
    _write(docs_dir, "slides.md", SLIDES)
    config = SimpleNamespace(docs_dir=str(docs_dir), site_dir=str(tmp_path / "site"))
    server = RecordingServer()

    plugin = _plugin()
    plugin.on_config(config)
    plugin.on_serve(server, config, None)

    assert server.watched == [(str(docs_dir.resolve()), False)]
