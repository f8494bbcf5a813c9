"""Data structures shared by the build-time and runtime citation paths.

BiblioConfig

`template` (`str`)
: Citation style used to render in-text and reference-list strings. Defaults
  to `apa`.

`locale` (`str`)
: BCP 47 locale forwarded to consumers for display purposes.

`numericalRefs` (`bool`)
: Number citations following the order in which keys first appear.

`showTooltips` (`bool`) and `hoverEffect` (`bool`)
: Presentation switches read by the slide components.

`filename` (`str | None`)
: Primary bibliography path relative to the project root. Falls back to
  `reference.bib`.

`itemsPerPage` (`int | None`)
: Number of references rendered per bibliography slide.

Unknown keys are kept verbatim so that newer slide components can read options
this package does not know about yet.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import json
import logging
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


logger = logging.getLogger(__name__)


class BiblioConfig(BaseModel):
    """Resolved bibliography configuration for one build or session."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    template: str = "apa"
    locale: str = "en-US"
    numerical_refs: bool = Field(default=False, alias="numericalRefs")
    show_tooltips: bool = Field(default=True, alias="showTooltips")
    hover_effect: bool = Field(default=True, alias="hoverEffect")
    filename: str | None = None
    items_per_page: int | None = Field(default=None, alias="itemsPerPage")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> BiblioConfig:
        """Merge ``values`` over the defaults, dropping values that fail validation."""
        payload = {str(key): value for key, value in (values or {}).items()}
        while True:
            try:
                return cls.model_validate(payload)
            except ValidationError as exc:
                rejected = {
                    str(error["loc"][0]) for error in exc.errors() if error.get("loc")
                }
                rejected &= set(payload)
                if not rejected:
                    raise
                for name in sorted(rejected):
                    logger.warning(
                        "[citation-plugin] Ignoring invalid biblio option '%s': %r",
                        name,
                        payload.pop(name),
                    )

    def merged(self, values: Mapping[str, Any] | None) -> BiblioConfig:
        """Return a new configuration with ``values`` layered on top."""
        current = self.to_dict()
        current.update(values or {})
        return BiblioConfig.from_mapping(current)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase mapping exposed to slide components."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class CitationEntry:
    """Formatted citation for a single bibliography key."""

    key: str
    citation: str = ""
    full_citation: str = ""
    title: str = ""
    author: str = ""
    year: str | int = ""
    error: bool = False

    @classmethod
    def placeholder(cls, key: str) -> CitationEntry:
        """Entry returned for keys that are not present in the index."""
        return cls(key=key, error=True)

    @classmethod
    def failed(cls, key: str) -> CitationEntry:
        """Entry recorded when formatting the bibliography record failed."""
        return cls(
            key=key,
            citation=f"[{key}?]",
            full_citation=f"Error formatting: {key}",
            error=True,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "citation": self.citation,
            "fullCitation": self.full_citation,
            "title": self.title,
            "author": self.author,
            "year": self.year,
        }
        if self.error:
            payload["error"] = True
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CitationEntry:
        return cls(
            key=str(payload["key"]),
            citation=str(payload.get("citation") or ""),
            full_citation=str(payload.get("fullCitation") or ""),
            title=str(payload.get("title") or ""),
            author=str(payload.get("author") or ""),
            year=payload.get("year") or "",
            error=bool(payload.get("error", False)),
        )


@dataclass(frozen=True, slots=True)
class CitationDataSnapshot:
    """Immutable, fully resolved citation index for one build."""

    citations: Mapping[str, CitationEntry] = field(default_factory=dict)
    ordered_keys: tuple[str, ...] = ()
    config: BiblioConfig = field(default_factory=BiblioConfig)

    def __post_init__(self) -> None:
        ordered = tuple(self.ordered_keys)
        if len(set(ordered)) != len(ordered):
            raise ValueError("Ordered citation keys must not contain duplicates.")
        if set(ordered) != set(self.citations):
            raise ValueError("Ordered citation keys must match the citation mapping.")
        object.__setattr__(self, "ordered_keys", ordered)
        object.__setattr__(self, "citations", MappingProxyType(dict(self.citations)))

    @classmethod
    def empty(cls, config: BiblioConfig | None = None) -> CitationDataSnapshot:
        return cls(citations={}, ordered_keys=(), config=config or BiblioConfig())

    @property
    def citations_index(self) -> dict[str, int]:
        """Map each key to its 1-based citation number."""
        return {key: position for position, key in enumerate(self.ordered_keys, start=1)}

    def entries(self) -> Iterable[CitationEntry]:
        """Yield entries in citation-number order."""
        for key in self.ordered_keys:
            yield self.citations[key]

    def to_dict(self) -> dict[str, Any]:
        return {
            "citations": {key: self.citations[key].to_dict() for key in self.ordered_keys},
            "orderedKeys": list(self.ordered_keys),
            "config": self.config.to_dict(),
        }

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CitationDataSnapshot:
        """Rebuild a snapshot from the artifact produced by :meth:`to_dict`."""
        raw_citations = payload.get("citations") or {}
        citations = {
            str(key): CitationEntry.from_dict({"key": key, **dict(value)})
            for key, value in raw_citations.items()
        }
        ordered = payload.get("orderedKeys")
        ordered_keys = tuple(str(key) for key in ordered) if ordered is not None else tuple(citations)
        return cls(
            citations=citations,
            ordered_keys=ordered_keys,
            config=BiblioConfig.from_mapping(payload.get("config")),
        )


__all__ = ["BiblioConfig", "CitationDataSnapshot", "CitationEntry"]
