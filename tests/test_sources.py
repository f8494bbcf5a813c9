from pathlib import Path
import textwrap

from slidecite.models import BiblioConfig
from slidecite.sources import (
    collect_source_files,
    collect_sources,
    read_sources,
    resolve_bibliography_path,
    scan_bibliography_attributes,
)


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")
    return path


def test_scan_bibliography_attributes_dedupes_in_order() -> None:
    slides = """
    <Cite key="a" bib="extra.bib" />
    <Cite key='b' bib='/refs/other.bib' />
    <Cite key="c" bib="extra.bib" />
    """

    assert scan_bibliography_attributes(slides) == ["extra.bib", "/refs/other.bib"]


def test_resolve_bibliography_path_strips_leading_slash(tmp_path: Path) -> None:
    assert resolve_bibliography_path(tmp_path, "/refs/a.bib") == (tmp_path / "refs" / "a.bib").resolve()
    assert resolve_bibliography_path(tmp_path, "a.bib") == (tmp_path / "a.bib").resolve()


def test_collect_source_files_lists_primary_first(tmp_path: Path) -> None:
    _write(tmp_path, "main.bib", "@misc{a, title = {A}}")
    _write(tmp_path, "refs/extra.bib", "@misc{b, title = {B}}")

    sources = collect_source_files(
        tmp_path,
        '<Cite key="b" bib="/refs/extra.bib" /> <Cite key="c" bib="gone.bib" />',
        BiblioConfig(filename="main.bib"),
    )

    assert [source.path.name for source in sources] == ["main.bib", "extra.bib", "gone.bib"]
    assert [source.primary for source in sources] == [True, False, False]
    assert [source.exists for source in sources] == [True, True, False]


def test_collect_sources_concatenates_existing_files(tmp_path: Path, emitter) -> None:
    _write(tmp_path, "reference.bib", "@misc{a, title = {A}}")
    _write(tmp_path, "extra.bib", "@misc{b, title = {B}}")

    text = collect_sources(tmp_path, '<Cite key="b" bib="extra.bib" />', BiblioConfig(), emitter)

    assert text.index("@misc{a") < text.index("@misc{b")
    assert not emitter.warnings


def test_collect_sources_warns_about_missing_files(tmp_path: Path, emitter) -> None:
    text = collect_sources(tmp_path, '<Cite key="b" bib="extra.bib" />', BiblioConfig(), emitter)

    assert text == ""
    assert len(emitter.warnings) == 2
    assert emitter.warnings[0].startswith("[citation-plugin] Bibliography file not found:")
    assert emitter.warnings[1].startswith("[citation-plugin] Additional bib file not found:")


def test_read_sources_with_no_sources(emitter) -> None:
    assert read_sources([], emitter) == ""
