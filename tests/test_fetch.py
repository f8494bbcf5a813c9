from __future__ import annotations

import asyncio
from typing import Any

import pytest
import requests

from slidecite.exceptions import BibliographyFetchError
from slidecite.fetch import BibliographyFetcher, with_raw_marker


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, response: FakeResponse | Exception) -> None:
        self.response = response
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_fetch_text_returns_body_on_success() -> None:
    session = FakeSession(FakeResponse(200, "@misc{a, title = {A}}"))
    fetcher = BibliographyFetcher(session=session, timeout=3.0)  # type: ignore[arg-type]

    assert fetcher.fetch_text("/reference.bib?raw") == "@misc{a, title = {A}}"
    url, kwargs = session.requests[0]
    assert url == "/reference.bib?raw"
    assert kwargs["timeout"] == 3.0
    assert kwargs["headers"]["User-Agent"] == "slidecite-bibliography-fetcher"


@pytest.mark.parametrize("status", [301, 404, 500])
def test_fetch_text_returns_none_on_http_error(status: int) -> None:
    fetcher = BibliographyFetcher(session=FakeSession(FakeResponse(status, "nope")))  # type: ignore[arg-type]

    assert fetcher.fetch_text("/missing.bib?raw") is None


def test_fetch_text_wraps_transport_errors() -> None:
    session = FakeSession(requests.ConnectionError("refused"))
    fetcher = BibliographyFetcher(session=session)  # type: ignore[arg-type]

    with pytest.raises(BibliographyFetchError, match="refused"):
        fetcher.fetch_text("http://localhost/reference.bib?raw")


def test_fetch_text_async_runs_in_thread() -> None:
    fetcher = BibliographyFetcher(session=FakeSession(FakeResponse(200, "body")))  # type: ignore[arg-type]

    assert asyncio.run(fetcher.fetch_text_async("/x.bib?raw")) == "body"


def test_with_raw_marker() -> None:
    assert with_raw_marker("/reference.bib") == "/reference.bib?raw"
    assert with_raw_marker("/reference.bib?v=2") == "/reference.bib?v=2"
