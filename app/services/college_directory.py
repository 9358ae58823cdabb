from __future__ import annotations

import logging
from typing import Any

from app.services.http_client import JsonHttpClient


log = logging.getLogger(__name__)


class DirectoryLookupError(Exception):
    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class CollegeDirectoryClient:
    """
    Thin client for the university directory (`GET /search?name=&country=`).

    Returns the raw records: {name, state-province, country, domains[], web_pages[]}.
    Any failure raises DirectoryLookupError; fallbacks are the caller's job.
    """

    def __init__(self, *, base_url: str, http: JsonHttpClient):
        self._base_url = base_url.rstrip("/")
        self._http = http

    async def search(self, *, name: str | None = None, country: str | None = None) -> list[dict[str, Any]]:
        params: dict[str, str] = {}
        if name:
            params["name"] = name
        if country:
            params["country"] = country

        res = await self._http.get_json(url=f"{self._base_url}/search", params=params)
        if not res.ok:
            log.warning(
                "college directory lookup failed: code=%s message=%s",
                res.error_code, res.error_message,
            )
            raise DirectoryLookupError(
                f"directory lookup failed: {res.error_code}",
                retryable=res.retryable,
            )

        records = res.detail.get("data")
        if not isinstance(records, list):
            raise DirectoryLookupError("directory returned a non-array body", retryable=False)

        return [r for r in records if isinstance(r, dict) and r.get("name")]

    async def aclose(self) -> None:
        await self._http.aclose()
