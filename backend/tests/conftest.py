"""Pytest configuration and shared fixtures."""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from zenradar.config import settings
from zenradar.core.exceptions import TransientFetchError
from zenradar.db.store import InMemoryDocumentStore, SqlAlchemyDocumentStore
from zenradar.models import Base
from zenradar.scrapers.utils.fetcher import FetchResponse
from zenradar.sites.descriptor import SiteDescriptor


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def fast_crawl_settings(monkeypatch):
    """No pauses between detail-page batches during tests."""
    monkeypatch.setattr(settings, "DETAIL_BATCH_DELAY_SECONDS", 0)


class FakeFetcher:
    """In-memory DocumentFetcher serving canned pages.

    Unknown URLs return a 404; URLs in ``failures`` raise TransientFetchError.
    """

    def __init__(self, pages: Optional[Dict[str, str]] = None):
        self.pages: Dict[str, str] = dict(pages or {})
        self.failures: Dict[str, str] = {}
        self.requested: List[str] = []

    async def fetch(self, url, timeout_ms=None, headers=None) -> FetchResponse:
        self.requested.append(url)
        if url in self.failures:
            raise TransientFetchError(url, self.failures[url])
        if url not in self.pages:
            return FetchResponse(status=404, body="", url=url)
        return FetchResponse(status=200, body=self.pages[url], url=url)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest_asyncio.fixture
async def session_factory():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield SessionLocal

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(session_factory) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(session_factory)


def make_site(**overrides) -> SiteDescriptor:
    """Descriptor for a fictional shop; keyword arguments replace defaults."""
    values = dict(
        site_id="teashop",
        name="Tea Shop",
        base_url="https://teashop.example",
        listing_url="https://teashop.example/collections/matcha",
        container_selectors=(".product-card",),
        name_selectors=(".product-card__title",),
        price_selectors=(".price",),
        link_selectors=("a.product-card__link",),
        image_selectors=(".product-card__image img",),
        stock_selector=".add-to-cart:not([disabled])",
        out_of_stock_selector=".sold-out",
        stock_keywords=("add to cart",),
        out_of_stock_keywords=("sold out",),
    )
    values.update(overrides)
    return SiteDescriptor(**values)


@pytest.fixture
def site() -> SiteDescriptor:
    return make_site()
