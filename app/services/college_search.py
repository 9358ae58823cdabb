from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from app.core.config import settings
from app.schemas.college import CollegeRecord
from app.services.college_data import FALLBACK_COLLEGES, POPULAR_COLLEGES, US_STATE_CODES
from app.services.college_directory import CollegeDirectoryClient, DirectoryLookupError
from app.services.http_client import JsonHttpClient


log = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2

# Callers should wait this long after the last keystroke before calling suggest().
DEBOUNCE_MS = 300

SuggestionSource = Literal["popular", "remote", "fallback"]

_CITY_PATTERNS = (
    re.compile(r"University of ([A-Za-z\s]+?)(?:\s|$|,)", re.IGNORECASE),
    re.compile(r"^([A-Za-z\s]+?)\s+(?:University|College|Institute)", re.IGNORECASE),
    re.compile(r"College of ([A-Za-z\s]+?)(?:\s|$|,)", re.IGNORECASE),
)

_GENERIC_DOMAIN_LABELS = {"edu", "com", "org", "www"}


@dataclass(frozen=True)
class CollegeSuggestions:
    colleges: tuple[CollegeRecord, ...]
    total: int
    has_more: bool
    source: SuggestionSource


def state_code_for(state_name: str | None) -> str:
    if not state_name:
        return "Unknown"
    return US_STATE_CODES.get(state_name.strip().lower(), state_name.upper())


def city_from_name(name: str, state_province: str) -> str | None:
    for pattern in _CITY_PATTERNS:
        m = pattern.search(name)
        if m and m.group(1):
            city = m.group(1).strip()
            # "University of California" names the state, not a city
            if city and city.lower() != state_province.strip().lower():
                return city
    return None


def city_from_domains(domains: list[str] | None) -> str | None:
    if not domains:
        return None
    for part in str(domains[0]).split("."):
        if len(part) > 2 and part.lower() not in _GENERIC_DOMAIN_LABELS:
            return part[:1].upper() + part[1:]
    return None


def classify_institution(name: str) -> str:
    n = name.lower()
    if "community college" in n:
        return "community"
    if "technical" in n or "institute of technology" in n:
        return "technical"
    if "state university" in n or "state college" in n:
        return "public"
    if "university" in n:
        return "university"
    if "college" in n:
        return "college"
    return "university"


def record_from_directory(raw: dict[str, Any], index: int) -> CollegeRecord:
    name = str(raw.get("name") or "").strip()
    state_province = str(raw.get("state-province") or "").strip()

    city = (
        city_from_name(name, state_province)
        or city_from_domains(raw.get("domains"))
        or state_province.split(",")[0].strip()
        or "Unknown"
    )
    web_pages = raw.get("web_pages") or []
    slug = re.sub(r"\s+", "-", name).lower()

    return CollegeRecord(
        id=f"hipolabs-{index}-{slug}",
        name=name,
        city=city,
        state=state_province or "Unknown",
        state_code=state_code_for(state_province),
        country=str(raw.get("country") or ""),
        website=web_pages[0] if web_pages else None,
        type=classify_institution(name),
    )


class LatestQueryTracker:
    """
    Last-query-wins bookkeeping for autocomplete callers.

    Every request from a caller gets a monotonically increasing sequence number;
    when a response resolves, it is only current if no newer request was issued
    for the same caller in the meantime.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def issue(self, key: str, seq: int | None = None) -> int:
        # client-supplied sequence numbers only ever move the mark forward
        if seq is None:
            seq = next(self._counter)
        if seq > self._latest.get(key, 0):
            self._latest[key] = seq
        return seq

    def is_current(self, key: str, seq: int) -> bool:
        return self._latest.get(key) == seq


class CollegeSuggestionEngine:
    """
    Autocomplete over the college directory.

    Result comes from exactly one of: the popular list (short queries), the
    process-lifetime cache, a fresh directory lookup, or the offline fallback
    set when the directory fails. suggest() never raises for directory errors.
    """

    def __init__(
        self,
        *,
        directory: CollegeDirectoryClient,
        default_country: str = "United States",
        popular: tuple[CollegeRecord, ...] = POPULAR_COLLEGES,
        fallback: tuple[CollegeRecord, ...] = FALLBACK_COLLEGES,
    ):
        self._directory = directory
        self._default_country = default_country
        self._popular = popular
        self._fallback = fallback
        self._cache: dict[tuple[str, int, str], CollegeSuggestions] = {}
        self.tracker = LatestQueryTracker()

    def popular(self, limit: int = 20) -> CollegeSuggestions:
        picked = self._popular[: max(0, limit)]
        return CollegeSuggestions(
            colleges=picked,
            total=len(self._popular),
            has_more=len(self._popular) > len(picked),
            source="popular",
        )

    async def suggest(self, query: str, limit: int = 20, country: str | None = None) -> CollegeSuggestions:
        query = query or ""
        limit = max(0, limit)
        country = country or self._default_country

        if len(query.strip()) < MIN_QUERY_LENGTH:
            return self.popular(limit)

        cache_key = (query.strip().lower(), limit, country.lower())
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            raw = await self._directory.search(name=query, country=country)
        except DirectoryLookupError as e:
            log.warning("college search falling back to local data: query=%r error=%s", query, e)
            return self._search_fallback(query, limit)

        colleges = tuple(record_from_directory(r, i) for i, r in enumerate(raw[:limit]))
        result = CollegeSuggestions(
            colleges=colleges,
            total=len(raw),
            has_more=len(raw) > limit,
            source="remote",
        )
        self._cache[cache_key] = result
        return result

    async def suggest_latest(
        self,
        key: str,
        query: str,
        limit: int = 20,
        country: str | None = None,
        seq: int | None = None,
    ) -> CollegeSuggestions | None:
        """suggest() for a keyed caller; returns None when a newer query superseded this one."""
        ticket = self.tracker.issue(key, seq)
        result = await self.suggest(query, limit, country)
        if not self.tracker.is_current(key, ticket):
            log.debug("dropping stale college suggestions: key=%s seq=%s", key, ticket)
            return None
        return result

    async def colleges_by_state(self, state_code: str) -> list[CollegeRecord]:
        wanted = state_code.strip().upper()
        try:
            raw = await self._directory.search(country=self._default_country)
        except DirectoryLookupError as e:
            log.warning("college lookup by state failed: state=%s error=%s", wanted, e)
            return []

        out: list[CollegeRecord] = []
        for r in raw:
            state_province = str(r.get("state-province") or "").strip()
            if not state_province or state_code_for(state_province) != wanted:
                continue
            out.append(record_from_directory(r, len(out)))
        return out

    def clear_cache(self) -> None:
        self._cache.clear()

    def _search_fallback(self, query: str, limit: int) -> CollegeSuggestions:
        q = query.strip().lower()
        matches = tuple(
            c for c in self._fallback
            if q in c.name.lower() or q in c.city.lower() or q in c.state.lower()
        )[:limit]
        return CollegeSuggestions(colleges=matches, total=len(matches), has_more=False, source="fallback")


_engine: CollegeSuggestionEngine | None = None


def get_college_engine() -> CollegeSuggestionEngine:
    """FastAPI dependency: one engine (and one directory connection pool) per process."""
    global _engine
    if _engine is None:
        http = JsonHttpClient(timeout_seconds=settings.college_directory_timeout_seconds)
        _engine = CollegeSuggestionEngine(
            directory=CollegeDirectoryClient(base_url=settings.college_directory_url, http=http),
            default_country=settings.college_default_country,
        )
    return _engine
