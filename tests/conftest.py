import os

# must be set before app.core.config is imported
os.environ["PAYMENT_BACKEND"] = "mock"
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("INTERNAL_ADMIN_KEY", "test-internal")
os.environ.setdefault("DATABASE_URL", os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite:///./.pytest-listing-hub.db"))

import pytest
import httpx

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Import Base + all models so metadata is complete
import app.models  # noqa: F401
from app.models.base import Base

from app.main import app
from app.core.db import get_db
from app.gateways.mock import MockPaymentGateway
from app.gateways.registry import get_payment_gateway
from app.services.college_search import CollegeSuggestionEngine, get_college_engine
from app.services.listing_drafts import ListingDraftStore, get_draft_store
from app.services.rate_limit import limit_payment_requests

from fixtures_seed import FakeDirectory


def _test_db_url(tmp_path) -> str:
    url = os.getenv("DATABASE_URL_TEST")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'listing-hub.db'}"


@pytest.fixture
async def async_engine(tmp_path):
    engine = create_async_engine(_test_db_url(tmp_path), future=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def draft_store() -> ListingDraftStore:
    return ListingDraftStore()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def college_engine(directory) -> CollegeSuggestionEngine:
    return CollegeSuggestionEngine(directory=directory)


@pytest.fixture
async def client(session_factory, gateway, draft_store, college_engine):
    """
    HTTP client against the app with storage, gateway and directory swapped
    for per-test instances. Each request gets its own session, as in production.
    """
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    async def _no_rate_limit():
        return None

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_draft_store] = lambda: draft_store
    app.dependency_overrides[get_college_engine] = lambda: college_engine
    app.dependency_overrides[limit_payment_requests] = _no_rate_limit

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
