"""Tests for the change-detecting upsert."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from zenradar.core.exceptions import PersistenceError
from zenradar.services.product_store import ChangeDetectingStore, UpsertResult
from zenradar.scrapers.base import NormalizedProduct

KEY = "teashop_ujimatcha_ujimatcha"
T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def crawled(**overrides) -> NormalizedProduct:
    """A product as it comes out of enrichment (no crawl timestamps)."""
    values = dict(
        product_id=KEY,
        name="Uji Matcha",
        normalized_name="uji matcha",
        site="teashop",
        site_name="Tea Shop",
        url="https://teashop.example/products/uji-matcha",
        is_in_stock=True,
        price="€24.00",
        original_price="€24,00",
        price_value=Decimal("24.00"),
        image_url="https://cdn.example/uji.jpg",
    )
    values.update(overrides)
    return NormalizedProduct(**values)


@pytest.fixture
def changes(memory_store) -> ChangeDetectingStore:
    return ChangeDetectingStore(memory_store, interval_hours=24)


# ============================================================================
# TESTS: FIRST SIGHTING
# ============================================================================

class TestInsert:
    """Tests for products seen for the first time."""

    async def test_new_product(self, changes, memory_store):
        result = await changes.upsert(KEY, crawled(), now=T0)

        assert result == UpsertResult(is_new=True, price_history_written=True)
        assert result.changed is True

        row = memory_store.products[KEY]
        assert row["first_seen"] == T0
        assert row["last_checked"] == T0
        assert row["last_updated"] == T0
        assert row["last_price_history_update"] == T0

        assert len(memory_store.stock_history) == 1
        assert memory_store.stock_history[0].previous_status is None
        assert memory_store.stock_history[0].is_in_stock is True
        assert len(memory_store.price_history) == 1
        assert memory_store.price_history[0].price == Decimal("24.00")

    async def test_new_product_without_price(self, changes, memory_store):
        result = await changes.upsert(KEY, crawled(price=None, original_price=None, price_value=None), now=T0)

        assert result.price_history_written is False
        assert memory_store.price_history == []
        assert memory_store.products[KEY]["last_price_history_update"] is None

    async def test_key_argument_wins(self, changes, memory_store):
        await changes.upsert("teashop_other_key", crawled(), now=T0)

        assert "teashop_other_key" in memory_store.products
        assert KEY not in memory_store.products


# ============================================================================
# TESTS: MERGE
# ============================================================================

class TestMerge:
    """Tests for products seen again."""

    async def test_unchanged_reupsert_is_idempotent(self, changes, memory_store):
        await changes.upsert(KEY, crawled(), now=T0)
        later = T0 + timedelta(hours=1)

        result = await changes.upsert(KEY, crawled(), now=later)

        assert result == UpsertResult(is_new=False)
        assert result.changed is False
        assert len(memory_store.stock_history) == 1
        assert len(memory_store.price_history) == 1

        row = memory_store.products[KEY]
        assert row["first_seen"] == T0
        assert row["last_checked"] == later
        assert row["last_updated"] == T0

    async def test_first_sighting_then_transitions(self, changes, memory_store):
        await changes.upsert(KEY, crawled(is_in_stock=True), now=T0)
        await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=1))
        await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=2))
        result = await changes.upsert(KEY, crawled(is_in_stock=True), now=T0 + timedelta(hours=3))

        assert result.stock_changed is True
        transitions = [(e.previous_status, e.is_in_stock) for e in memory_store.stock_history]
        assert transitions == [(None, True), (True, False), (False, True)]
        assert memory_store.products[KEY]["last_updated"] == T0 + timedelta(hours=3)

    async def test_existing_product_flip_and_back_writes_two_rows(self, changes, memory_store):
        await memory_store.set_product(replace(crawled(is_in_stock=True), first_seen=T0, last_checked=T0))

        await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=1))
        await changes.upsert(KEY, crawled(is_in_stock=True), now=T0 + timedelta(hours=2))

        transitions = [(e.previous_status, e.is_in_stock) for e in memory_store.stock_history]
        assert transitions == [(True, False), (False, True)]

    async def test_price_change_writes_history(self, changes, memory_store):
        await changes.upsert(KEY, crawled(), now=T0)
        later = T0 + timedelta(hours=1)

        result = await changes.upsert(
            KEY, crawled(price="€20.00", original_price="€20,00", price_value=Decimal("20.00")), now=later
        )

        assert result.price_changed is True
        assert result.price_history_written is True
        assert [e.price for e in memory_store.price_history] == [Decimal("24.00"), Decimal("20.00")]
        row = memory_store.products[KEY]
        assert row["price"] == "€20.00"
        assert row["last_updated"] == later
        assert row["last_price_history_update"] == later

    async def test_stale_price_history_is_refreshed(self, changes, memory_store):
        await changes.upsert(KEY, crawled(), now=T0)

        early = await changes.upsert(KEY, crawled(), now=T0 + timedelta(hours=23))
        due = await changes.upsert(KEY, crawled(), now=T0 + timedelta(hours=24))

        assert early.price_history_written is False
        assert due.price_history_written is True
        assert due.price_changed is False
        assert len(memory_store.price_history) == 2
        row = memory_store.products[KEY]
        assert row["last_price_history_update"] == T0 + timedelta(hours=24)
        assert row["last_updated"] == T0

    async def test_missing_price_and_image_keep_stored_values(self, changes, memory_store):
        await changes.upsert(KEY, crawled(), now=T0)

        await changes.upsert(
            KEY,
            crawled(price=None, original_price=None, price_value=None, image_url=None),
            now=T0 + timedelta(hours=30),
        )

        row = memory_store.products[KEY]
        assert row["price_value"] == Decimal("24.00")
        assert row["image_url"] == "https://cdn.example/uji.jpg"
        assert len(memory_store.price_history) == 1

    async def test_seen_again_clears_discontinued(self, changes, memory_store):
        await changes.upsert(KEY, crawled(), now=T0)
        memory_store.products[KEY]["is_discontinued"] = True

        await changes.upsert(KEY, crawled(), now=T0 + timedelta(hours=1))

        assert memory_store.products[KEY]["is_discontinued"] is False

    async def test_sql_backend(self, sql_store):
        changes = ChangeDetectingStore(sql_store, interval_hours=24)

        await changes.upsert(KEY, crawled(), now=T0)
        result = await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=1))

        product = await sql_store.get_product(KEY)
        assert result.stock_changed is True
        assert product.is_in_stock is False
        assert product.first_seen == T0
        assert [e.is_in_stock for e in await sql_store.list_stock_history(KEY)] == [True, False]
        assert [e.price for e in await sql_store.list_price_history(KEY)] == [Decimal("24.00")]


class TestFailures:
    """Tests for store failures surfacing to the caller."""

    async def test_persistence_error_propagates(self, memory_store):
        class FailingStore(type(memory_store)):
            async def update_product(self, product_id, changes):
                raise PersistenceError("update_product", product_id, "disk full")

        store = FailingStore()
        changes = ChangeDetectingStore(store)
        await changes.upsert(KEY, crawled(), now=T0)

        with pytest.raises(PersistenceError):
            await changes.upsert(KEY, replace(crawled(), is_in_stock=False), now=T0)

    async def test_failed_update_writes_no_history(self, memory_store):
        class FlakyStore(type(memory_store)):
            fail = False

            async def update_product(self, product_id, changes):
                if self.fail:
                    raise PersistenceError("update_product", product_id, "disk full")
                await super().update_product(product_id, changes)

        store = FlakyStore()
        changes = ChangeDetectingStore(store, interval_hours=24)
        await changes.upsert(KEY, crawled(is_in_stock=True), now=T0)

        store.fail = True
        with pytest.raises(PersistenceError):
            await changes.upsert(
                KEY, crawled(is_in_stock=False, price_value=Decimal("20.00")), now=T0 + timedelta(hours=1)
            )
        assert len(store.stock_history) == 1
        assert len(store.price_history) == 1

        store.fail = False
        await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=2))
        await changes.upsert(KEY, crawled(is_in_stock=False), now=T0 + timedelta(hours=3))

        transitions = [(e.previous_status, e.is_in_stock) for e in store.stock_history]
        assert transitions == [(None, True), (True, False)]
