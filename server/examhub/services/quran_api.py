"""
Verse lookup against the public Quran text API.
"""
import logging
from typing import Any, Dict

import httpx

from examhub.config import Settings
from examhub.errors import AppError

logger = logging.getLogger(__name__)


class QuranApiClient:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.base_url = settings.quran_api_base_url.rstrip("/")
        self.edition = settings.quran_edition
        self.http_client = http_client

    def verse_url(self, surah: int, verse: int) -> str:
        return f"{self.base_url}/{surah}:{verse}/{self.edition}"

    async def fetch_verse(self, surah: int, verse: int) -> Dict[str, Any]:
        """
        Return the `data` object for one verse.

        The API answers unknown references with `code != 200` and a string in
        `data`; both are reported as NotFound.
        """
        url = self.verse_url(surah, verse)
        try:
            response = await self.http_client.get(url)
        except httpx.HTTPError as exc:
            raise AppError.upstream("Failed to send request to Quran API", str(exc)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise AppError.upstream("Failed to deserialize Quran API response", str(exc)) from exc

        if not isinstance(payload, dict):
            raise AppError.upstream("Unexpected Quran API response", str(payload)[:200])

        data = payload.get("data")
        if payload.get("code") != 200 or not isinstance(data, dict):
            reason = data if isinstance(data, str) else "Invalid surah/verse or not found"
            logger.info("Verse %s:%s not found: %s", surah, verse, reason)
            raise AppError.not_found(f"Verse {surah}:{verse} not found", reason)

        return data
