import json
import logging

import pytest

from slidecite.models import BiblioConfig, CitationDataSnapshot, CitationEntry


def test_biblio_config_defaults() -> None:
    assert BiblioConfig().to_dict() == {
        "template": "apa",
        "locale": "en-US",
        "numericalRefs": False,
        "showTooltips": True,
        "hoverEffect": True,
    }


def test_biblio_config_from_mapping_keeps_unknown_options() -> None:
    config = BiblioConfig.from_mapping({"template": "ieee", "itemsPerPage": 4, "accent": "teal"})

    assert config.template == "ieee"
    assert config.items_per_page == 4
    assert config.to_dict()["accent"] == "teal"


def test_biblio_config_drops_invalid_values(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        config = BiblioConfig.from_mapping({"template": "ieee", "itemsPerPage": "many"})

    assert config.template == "ieee"
    assert config.items_per_page is None
    assert any("itemsPerPage" in record.message for record in caplog.records)


def test_biblio_config_merged_overrides_values() -> None:
    config = BiblioConfig(template="ieee").merged({"numericalRefs": True})

    assert config.template == "ieee"
    assert config.numerical_refs is True


def test_citation_entry_serialisation() -> None:
    entry = CitationEntry(
        key="k",
        citation="(Smith, 2020)",
        full_citation="John Smith. Title.",
        author="Smith, J.",
        year=2020,
    )

    payload = entry.to_dict()

    assert payload["fullCitation"] == "John Smith. Title."
    assert "error" not in payload
    assert CitationEntry.failed("k").to_dict()["error"] is True
    assert CitationEntry.from_dict(payload) == entry


def test_snapshot_rejects_inconsistent_keys() -> None:
    entry = CitationEntry(key="a")
    with pytest.raises(ValueError):
        CitationDataSnapshot(citations={"a": entry}, ordered_keys=("a", "a"))
    with pytest.raises(ValueError):
        CitationDataSnapshot(citations={"a": entry}, ordered_keys=("b",))


def test_snapshot_is_read_only() -> None:
    snapshot = CitationDataSnapshot(citations={"a": CitationEntry(key="a")}, ordered_keys=("a",))

    with pytest.raises(TypeError):
        snapshot.citations["b"] = CitationEntry(key="b")  # type: ignore[index]


def test_snapshot_json_layout() -> None:
    snapshot = CitationDataSnapshot(
        citations={"b": CitationEntry(key="b"), "a": CitationEntry(key="a")},
        ordered_keys=("b", "a"),
        config=BiblioConfig(template="ieee"),
    )

    payload = json.loads(snapshot.to_json())

    assert payload["orderedKeys"] == ["b", "a"]
    assert list(payload["citations"]) == ["b", "a"]
    assert payload["config"]["template"] == "ieee"
    assert CitationDataSnapshot.from_dict(payload) == snapshot
    assert snapshot.citations_index == {"b": 1, "a": 2}
