"""HTTP retrieval of raw bibliography files for the live citation index."""

from __future__ import annotations

import asyncio
from threading import Lock

import requests

from .exceptions import BibliographyFetchError


RAW_MARKER = "raw"


def with_raw_marker(url: str) -> str:
    """Append the ``?raw`` marker unless the URL already carries a query."""
    return url if "?" in url else f"{url}?{RAW_MARKER}"


class BibliographyFetcher:
    """Retrieve bibliography payloads served by the slide host."""

    _DEFAULT_USER_AGENT = "slidecite-bibliography-fetcher"

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
        user_agent: str | None = None,
    ) -> None:
        self._session_lock = Lock()
        self._session = session
        self._timeout = timeout
        self._user_agent = user_agent or self._DEFAULT_USER_AGENT

    def fetch_text(self, url: str) -> str | None:
        """Return the response body, or ``None`` for non-success responses."""
        client = self._ensure_session()
        try:
            response = client.get(
                url,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise BibliographyFetchError(f"Unable to fetch '{url}': {exc}") from exc
        if not 200 <= response.status_code < 300:
            return None
        return response.text

    async def fetch_text_async(self, url: str) -> str | None:
        """Run :meth:`fetch_text` in a worker thread."""
        return await asyncio.to_thread(self.fetch_text, url)

    def _ensure_session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        with self._session_lock:
            if self._session is None:
                self._session = requests.Session()
            return self._session


__all__ = ["RAW_MARKER", "BibliographyFetcher", "with_raw_marker"]
