"""Upsert with change detection.

Handles merging freshly crawled products into persisted state, writing
stock history on genuine transitions and price history on price changes
or once per freshness window.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog

from zenradar.config import settings
from zenradar.db.store import DocumentStore
from zenradar.scrapers.base import NormalizedProduct, PriceHistoryEntry, StockHistoryEntry

logger = structlog.get_logger(__name__)

# Current-state fields that a crawl overwrites on an existing row
_REFRESHED_FIELDS = (
    "name", "normalized_name", "base_name", "site_name", "url", "category", "variant_id", "crawl_source",
)
# Fields kept from the stored row when the fresh crawl has no value
_STICKY_FIELDS = ("price", "original_price", "price_value", "image_url")


@dataclass(frozen=True)
class UpsertResult:
    """What one upsert changed."""

    is_new: bool
    stock_changed: bool = False
    price_changed: bool = False
    price_history_written: bool = False

    @property
    def changed(self) -> bool:
        return self.is_new or self.stock_changed or self.price_changed


class ChangeDetectingStore:
    """Reads prior state by key, emits history and writes current state.

    Args:
        store: Underlying document store
        interval_hours: Price history freshness window
    """

    def __init__(self, store: DocumentStore, interval_hours: Optional[int] = None):
        self.store = store
        self.interval = timedelta(
            hours=interval_hours if interval_hours is not None else settings.PRICE_HISTORY_INTERVAL_HOURS
        )
        self.logger = logger.bind(service="change_detecting_store")

    async def upsert(self, key: str, product: NormalizedProduct, now: Optional[datetime] = None) -> UpsertResult:
        """Insert or merge one product.

        Args:
            key: Product identity key
            product: Freshly normalized product
            now: Crawl timestamp, current UTC time by default

        Returns:
            UpsertResult describing what was written

        Raises:
            PersistenceError: If any store call fails
        """
        now = now or datetime.now(timezone.utc)
        if product.product_id != key:
            product = replace(product, product_id=key)

        existing = await self.store.get_product(key)
        if existing is None:
            return await self._insert(product, now)
        return await self._merge(existing, product, now)

    async def _insert(self, product: NormalizedProduct, now: datetime) -> UpsertResult:
        price_known = product.price_value is not None
        row = replace(
            product,
            first_seen=now,
            last_checked=now,
            last_updated=now,
            last_price_history_update=now if price_known else None,
            is_discontinued=False,
        )
        await self.store.set_product(row)
        await self.store.append_stock_history(
            StockHistoryEntry(
                product_id=row.product_id,
                product_name=row.name,
                site=row.site,
                previous_status=None,
                is_in_stock=row.is_in_stock,
                timestamp=now,
            )
        )
        if price_known:
            await self._append_price(row, now)

        self.logger.info(
            "product_created",
            product_id=row.product_id,
            site=row.site,
            in_stock=row.is_in_stock,
            price=row.price,
        )
        return UpsertResult(is_new=True, price_history_written=price_known)

    async def _merge(self, existing: NormalizedProduct, product: NormalizedProduct, now: datetime) -> UpsertResult:
        stock_changed = existing.is_in_stock != product.is_in_stock
        price_known = product.price_value is not None
        price_changed = price_known and existing.price_value != product.price_value
        write_price = price_known and (price_changed or self._price_history_stale(existing, now))

        changes: Dict[str, Any] = {name: getattr(product, name) for name in _REFRESHED_FIELDS}
        for name in _STICKY_FIELDS:
            value = getattr(product, name)
            if value is not None:
                changes[name] = value
        changes.update(
            is_in_stock=product.is_in_stock,
            currency=product.currency,
            is_discontinued=False,
            last_checked=now,
        )
        if write_price:
            changes["last_price_history_update"] = now
        if stock_changed or price_changed:
            changes["last_updated"] = now

        # History follows the row write; a failed update must not leave a transition behind
        await self.store.update_product(existing.product_id, changes)

        if stock_changed:
            await self.store.append_stock_history(
                StockHistoryEntry(
                    product_id=existing.product_id,
                    product_name=product.name,
                    site=product.site,
                    previous_status=existing.is_in_stock,
                    is_in_stock=product.is_in_stock,
                    timestamp=now,
                )
            )
            self.logger.info(
                "stock_changed",
                product_id=existing.product_id,
                previous=existing.is_in_stock,
                current=product.is_in_stock,
            )

        if write_price:
            await self._append_price(replace(product, product_id=existing.product_id), now)
        if price_changed:
            self.logger.info(
                "price_changed",
                product_id=existing.product_id,
                previous=existing.price,
                current=product.price,
            )

        return UpsertResult(
            is_new=False,
            stock_changed=stock_changed,
            price_changed=price_changed,
            price_history_written=write_price,
        )

    def _price_history_stale(self, existing: NormalizedProduct, now: datetime) -> bool:
        last = existing.last_price_history_update
        return last is None or now - last >= self.interval

    async def _append_price(self, product: NormalizedProduct, now: datetime) -> None:
        await self.store.append_price_history(
            PriceHistoryEntry(
                product_id=product.product_id,
                product_name=product.name,
                site=product.site,
                price=product.price_value,
                currency=product.currency,
                is_in_stock=product.is_in_stock,
                timestamp=now,
            )
        )
