"""Tests for the in-memory and SQLAlchemy document stores."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from zenradar.core.exceptions import PersistenceError
from zenradar.db.store import InMemoryDocumentStore, SqlAlchemyDocumentStore
from zenradar.scrapers.base import NormalizedProduct, PriceHistoryEntry, StockHistoryEntry

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_product(**overrides) -> NormalizedProduct:
    values = dict(
        product_id="teashop_ujimatcha_ujimatcha",
        name="Uji Matcha",
        normalized_name="uji matcha",
        site="teashop",
        site_name="Tea Shop",
        url="https://teashop.example/products/uji-matcha",
        is_in_stock=True,
        price="€24.00",
        original_price="€24,00",
        price_value=Decimal("24.00"),
        first_seen=NOW,
        last_checked=NOW,
        last_updated=NOW,
    )
    values.update(overrides)
    return NormalizedProduct(**values)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, session_factory):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return SqlAlchemyDocumentStore(session_factory)


# ============================================================================
# TESTS: PRODUCTS
# ============================================================================

class TestProducts:
    """Tests for keyed product reads and writes."""

    async def test_get_missing(self, store):
        assert await store.get_product("nope") is None

    async def test_set_and_get(self, store):
        await store.set_product(make_product())

        product = await store.get_product("teashop_ujimatcha_ujimatcha")

        assert product.name == "Uji Matcha"
        assert product.price_value == Decimal("24.00")
        assert product.is_in_stock is True
        assert product.first_seen == NOW
        assert product.first_seen.tzinfo is not None

    async def test_set_replaces_row(self, store):
        await store.set_product(make_product())
        await store.set_product(make_product(name="Uji Matcha Premium", is_in_stock=False))

        product = await store.get_product("teashop_ujimatcha_ujimatcha")

        assert product.name == "Uji Matcha Premium"
        assert product.is_in_stock is False

    async def test_update_product(self, store):
        await store.set_product(make_product())

        await store.update_product("teashop_ujimatcha_ujimatcha", {"is_in_stock": False, "price": "€20.00"})
        product = await store.get_product("teashop_ujimatcha_ujimatcha")

        assert product.is_in_stock is False
        assert product.price == "€20.00"
        assert product.name == "Uji Matcha"

    async def test_update_missing_product(self, store):
        with pytest.raises(PersistenceError):
            await store.update_product("nope", {"is_in_stock": False})

    async def test_update_unknown_field(self, store):
        await store.set_product(make_product())

        with pytest.raises(PersistenceError):
            await store.update_product("teashop_ujimatcha_ujimatcha", {"colour": "green"})

    async def test_health(self, store):
        health = await store.health()

        assert health["healthy"] is True
        assert health["backend"] in ("memory", "sql")


# ============================================================================
# TESTS: HISTORY AND CRAWL REQUESTS
# ============================================================================

class TestSqlHistory:
    """Tests for history logs on the SQL store."""

    async def test_histories_are_appended_in_time_order(self, sql_store):
        later = NOW.replace(hour=13)
        for timestamp, in_stock in ((later, False), (NOW, True)):
            await sql_store.append_stock_history(
                StockHistoryEntry(
                    product_id="p1",
                    product_name="Uji Matcha",
                    site="teashop",
                    previous_status=None if in_stock else True,
                    is_in_stock=in_stock,
                    timestamp=timestamp,
                )
            )
        await sql_store.append_price_history(
            PriceHistoryEntry(
                product_id="p1",
                product_name="Uji Matcha",
                site="teashop",
                price=Decimal("62.64"),
                currency="EUR",
                is_in_stock=True,
                timestamp=NOW,
            )
        )

        stock = await sql_store.list_stock_history("p1")
        prices = await sql_store.list_price_history("p1")

        assert [entry.is_in_stock for entry in stock] == [True, False]
        assert stock[0].previous_status is None
        assert stock[1].timestamp == later
        assert prices[0].price == Decimal("62.64")
        assert await sql_store.list_stock_history("p2") == []


class TestCrawlRequests:
    """Tests for crawl request bookkeeping."""

    async def test_memory_upsert(self, memory_store):
        await memory_store.update_crawl_request("req-1", status="running", sites=["ippodo"])
        await memory_store.update_crawl_request("req-1", status="completed", total_products=12)

        assert memory_store.crawl_requests["req-1"] == {
            "request_id": "req-1",
            "status": "completed",
            "sites": ["ippodo"],
            "total_products": 12,
        }

    async def test_sql_upsert(self, sql_store, session_factory):
        from zenradar.models import CrawlRequest

        await sql_store.update_crawl_request("req-1", status="running", trigger_type="manual", started_at=NOW)
        await sql_store.update_crawl_request("req-1", status="failed", error="boom")

        async with session_factory() as session:
            row = await session.get(CrawlRequest, "req-1")

        assert row.status == "failed"
        assert row.trigger_type == "manual"
        assert row.error == "boom"
