import httpx
import pytest

from app.services.college_directory import CollegeDirectoryClient, DirectoryLookupError
from app.services.college_search import CollegeSuggestionEngine
from app.services.http_client import JsonHttpClient


def _client(handler) -> CollegeDirectoryClient:
    http = JsonHttpClient(timeout_seconds=5.0, transport=httpx.MockTransport(handler))
    return CollegeDirectoryClient(base_url="http://directory.test/", http=http)


@pytest.mark.asyncio
async def test_search_sends_name_and_country_and_drops_nameless_records():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json=[
                {"name": "Stanford University", "state-province": "California"},
                {"name": "", "state-province": "Nowhere"},
                {"state-province": "Nowhere"},
            ],
        )

    directory = _client(handler)
    try:
        rows = await directory.search(name="stan", country="United States")
    finally:
        await directory.aclose()

    assert seen == {"path": "/search", "params": {"name": "stan", "country": "United States"}}
    assert [r["name"] for r in rows] == ["Stanford University"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status,retryable", [(503, True), (404, False)])
async def test_http_errors_raise_lookup_error(status, retryable):
    directory = _client(lambda request: httpx.Response(status, json={"error": "nope"}))
    try:
        with pytest.raises(DirectoryLookupError) as ei:
            await directory.search(name="stan")
    finally:
        await directory.aclose()
    assert ei.value.retryable is retryable


@pytest.mark.asyncio
async def test_timeout_raises_retryable_lookup_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    directory = _client(handler)
    try:
        with pytest.raises(DirectoryLookupError) as ei:
            await directory.search(name="stan")
    finally:
        await directory.aclose()
    assert ei.value.retryable is True


@pytest.mark.asyncio
async def test_non_array_body_is_an_error():
    directory = _client(lambda request: httpx.Response(200, json={"unexpected": True}))
    try:
        with pytest.raises(DirectoryLookupError) as ei:
            await directory.search(name="stan")
    finally:
        await directory.aclose()
    assert ei.value.retryable is False


@pytest.mark.asyncio
async def test_engine_falls_back_when_directory_is_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    directory = _client(handler)
    engine = CollegeSuggestionEngine(directory=directory)
    try:
        res = await engine.suggest("Stanford")
    finally:
        await directory.aclose()

    assert res.source == "fallback"
    assert [c.name for c in res.colleges] == ["Stanford University"]


@pytest.mark.asyncio
async def test_http_client_times_unstreamed_responses():
    http = JsonHttpClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[{"name": "X"}])))
    try:
        res = await http.get_json(url="http://directory.test/search")
    finally:
        await http.aclose()

    assert res.ok is True
    assert res.detail == {"data": [{"name": "X"}]}
    assert res.elapsed_ms is not None and res.elapsed_ms >= 0
