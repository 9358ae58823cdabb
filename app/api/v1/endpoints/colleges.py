from fastapi import APIRouter, Depends, Query

from app.schemas.college import CollegeRecord, CollegeSearchOut
from app.services.college_search import CollegeSuggestionEngine, CollegeSuggestions, get_college_engine

router = APIRouter()


def _out(res: CollegeSuggestions) -> CollegeSearchOut:
    return CollegeSearchOut(
        colleges=list(res.colleges),
        total=res.total,
        has_more=res.has_more,
        source=res.source,
    )


@router.get("/colleges/search", response_model=CollegeSearchOut)
async def search_colleges(
    q: str = Query(default="", max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    country: str | None = Query(default=None, max_length=100),
    client_id: str | None = Query(default=None, max_length=120),
    seq: int | None = Query(default=None, ge=1),
    engine: CollegeSuggestionEngine = Depends(get_college_engine),
) -> CollegeSearchOut:
    if not client_id:
        return _out(await engine.suggest(q, limit, country))

    res = await engine.suggest_latest(client_id, q, limit, country, seq)
    if res is None:
        # a newer query from this client is in flight; the caller should drop this response
        return CollegeSearchOut(colleges=[], total=0, has_more=False, source="superseded", stale=True)
    return _out(res)


@router.get("/colleges/popular", response_model=CollegeSearchOut)
async def popular_colleges(
    limit: int = Query(default=20, ge=1, le=100),
    engine: CollegeSuggestionEngine = Depends(get_college_engine),
) -> CollegeSearchOut:
    return _out(engine.popular(limit))


@router.get("/colleges/states/{state_code}", response_model=list[CollegeRecord])
async def colleges_in_state(
    state_code: str,
    engine: CollegeSuggestionEngine = Depends(get_college_engine),
) -> list[CollegeRecord]:
    return await engine.colleges_by_state(state_code)
