import asyncio

import pytest

from app.services.college_data import FALLBACK_COLLEGES, POPULAR_COLLEGES
from app.services.college_search import (
    LatestQueryTracker,
    classify_institution,
    record_from_directory,
    state_code_for,
)

from fixtures_seed import DIRECTORY_RECORDS


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", " ", "s", " s "])
async def test_short_query_returns_popular_without_remote_call(college_engine, directory, query):
    res = await college_engine.suggest(query, limit=5)

    assert res.source == "popular"
    assert res.colleges == POPULAR_COLLEGES[:5]
    assert res.total == len(POPULAR_COLLEGES)
    assert res.has_more is True
    assert directory.calls == []


@pytest.mark.asyncio
async def test_popular_keeps_editorial_order(college_engine):
    res = college_engine.popular(limit=100)
    assert [c.id for c in res.colleges][:3] == ["harvard", "mit", "stanford"]
    assert res.has_more is False


@pytest.mark.asyncio
async def test_remote_results_are_cached_per_normalized_query(college_engine, directory):
    first = await college_engine.suggest("Stan", limit=20)
    second = await college_engine.suggest("  stan ", limit=20)

    assert first.source == "remote"
    assert second is first
    assert len(directory.calls) == 1
    assert directory.calls[0] == ("Stan", "United States")
    assert [c.name for c in first.colleges] == ["Stanford University", "Stanly Community College"]


@pytest.mark.asyncio
async def test_cache_key_includes_limit_and_country(college_engine, directory):
    await college_engine.suggest("stan", limit=20)
    await college_engine.suggest("stan", limit=1)
    await college_engine.suggest("stan", limit=20, country="Canada")
    assert len(directory.calls) == 3


@pytest.mark.asyncio
async def test_limit_truncates_and_reports_more(college_engine):
    res = await college_engine.suggest("stan", limit=1)
    assert len(res.colleges) == 1
    assert res.total == 2
    assert res.has_more is True


@pytest.mark.asyncio
async def test_directory_failure_falls_back_and_is_not_cached(college_engine, directory):
    directory.failing = True
    res = await college_engine.suggest("cambridge")

    assert res.source == "fallback"
    assert {c.name for c in res.colleges} == {"Harvard University", "MIT"}
    assert all(c in FALLBACK_COLLEGES for c in res.colleges)

    directory.failing = False
    again = await college_engine.suggest("cambridge")
    assert again.source == "remote"
    assert len(directory.calls) == 2


@pytest.mark.asyncio
async def test_empty_remote_result_is_not_an_error(college_engine):
    res = await college_engine.suggest("zzzz")
    assert res.source == "remote"
    assert res.colleges == ()
    assert res.total == 0
    assert res.has_more is False


@pytest.mark.asyncio
async def test_newer_query_supersedes_slower_older_one(college_engine, directory):
    slow = asyncio.Event()
    directory.gates["stan"] = slow

    older = asyncio.create_task(college_engine.suggest_latest("client-1", "stan"))
    await asyncio.sleep(0)
    newer = await college_engine.suggest_latest("client-1", "stanford")
    slow.set()

    assert await older is None
    assert newer is not None
    assert [c.name for c in newer.colleges] == ["Stanford University"]


@pytest.mark.asyncio
async def test_client_sequence_numbers_only_move_forward(college_engine):
    assert await college_engine.suggest_latest("client-2", "stanford", seq=5) is not None
    assert await college_engine.suggest_latest("client-2", "stan", seq=3) is None
    # other callers are unaffected
    assert await college_engine.suggest_latest("client-3", "stan", seq=1) is not None


def test_tracker_issues_increasing_tickets():
    tracker = LatestQueryTracker()
    a = tracker.issue("k")
    b = tracker.issue("k")
    assert b > a
    assert tracker.is_current("k", b)
    assert not tracker.is_current("k", a)


def test_record_from_directory_derives_city_and_state_code():
    rec = record_from_directory(DIRECTORY_RECORDS[0], 0)
    assert rec.id == "hipolabs-0-stanford-university"
    assert rec.city == "Stanford"
    assert rec.state == "California"
    assert rec.state_code == "CA"
    assert rec.website == "https://www.stanford.edu/"
    assert rec.type == "university"


def test_city_named_after_state_is_rejected_in_favour_of_domain():
    rec = record_from_directory(DIRECTORY_RECORDS[1], 3)
    assert rec.city == "Umich"
    assert rec.state_code == "MI"


def test_record_without_state_or_hints():
    rec = record_from_directory({"name": "Xyz", "country": "United States"}, 7)
    assert rec.city == "Unknown"
    assert rec.state == "Unknown"
    assert rec.state_code == "Unknown"
    assert rec.website is None


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Foothill Community College", "community"),
        ("Georgia Institute of Technology", "technical"),
        ("Ohio State University", "public"),
        ("Boston University", "university"),
        ("Williams College", "college"),
        ("The Juilliard School", "university"),
    ],
)
def test_classify_institution(name, expected):
    assert classify_institution(name) == expected


def test_state_code_for_unknown_state_uppercases():
    assert state_code_for("New York") == "NY"
    assert state_code_for("Ontario") == "ONTARIO"
    assert state_code_for(None) == "Unknown"


@pytest.mark.asyncio
async def test_colleges_by_state(college_engine):
    rows = await college_engine.colleges_by_state("mi")
    assert [r.name for r in rows] == ["University of Michigan", "Michigan Technological University"]
    assert all(r.state_code == "MI" for r in rows)
    assert [r.type for r in rows] == ["university", "technical"]
    assert rows[0].city == "Umich"


@pytest.mark.asyncio
async def test_search_endpoint_marks_superseded_responses(client):
    r = await client.get("/v1/colleges/search", params={"q": "stanford", "client_id": "c", "seq": 2})
    assert r.status_code == 200
    assert r.json()["source"] == "remote"

    r = await client.get("/v1/colleges/search", params={"q": "stan", "client_id": "c", "seq": 1})
    body = r.json()
    assert body["stale"] is True
    assert body["colleges"] == []


@pytest.mark.asyncio
async def test_popular_endpoint(client):
    r = await client.get("/v1/colleges/popular", params={"limit": 3})
    assert r.status_code == 200
    body = r.json()
    assert [c["id"] for c in body["colleges"]] == ["harvard", "mit", "stanford"]
    assert body["source"] == "popular"
