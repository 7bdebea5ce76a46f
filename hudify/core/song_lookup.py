"""Song lookup by lyrics or title through Shazam's web search."""
import logging
from typing import Optional

import requests
from fastapi.concurrency import run_in_threadpool

from hudify.config import HTTP_TIMEOUT_SEC, SHAZAM_COUNTRY, SHAZAM_LANGUAGE, SHAZAM_SEARCH_URL
from hudify.models.lookup import SongMatch

logger = logging.getLogger(__name__)


class ShazamLookup:
    """Finds the best matching song for free text (lyrics, title, artist)."""

    def __init__(
        self,
        http: Optional[requests.Session] = None,
        language: str = SHAZAM_LANGUAGE,
        country: str = SHAZAM_COUNTRY,
        timeout: float = HTTP_TIMEOUT_SEC,
    ) -> None:
        self._http = http or requests.Session()
        self._url = SHAZAM_SEARCH_URL.format(language=language, country=country)
        self._timeout = timeout

    def search(self, text: str) -> Optional[SongMatch]:
        """Blocking search; returns the top hit or None. HTTP errors propagate."""
        resp = self._http.get(
            self._url,
            params={"query": text, "numResults": 1, "offset": 0, "types": "songs"},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        data = resp.json() if resp.content else {}
        hits = ((data or {}).get("tracks") or {}).get("hits") or []
        if not hits:
            return None
        heading = hits[0].get("heading") or {}
        title = heading.get("title")
        if not title:
            return None
        return SongMatch(track_name=title, artist=heading.get("subtitle") or "")

    async def find_track(self, text: str) -> Optional[SongMatch]:
        return await run_in_threadpool(self.search, text)
