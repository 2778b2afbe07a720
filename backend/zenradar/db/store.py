"""Keyed document store for products plus the two append-only history logs.

The crawler only needs key lookups, whole-row writes, partial updates and
appends. ``InMemoryDocumentStore`` backs tests and dry runs;
``SqlAlchemyDocumentStore`` is the persistent implementation.
"""

from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from zenradar.core.exceptions import PersistenceError
from zenradar.db.utils import check_database_health
from zenradar.models import CrawlRequest, PriceHistory, Product, StockHistory
from zenradar.scrapers.base import NormalizedProduct, PriceHistoryEntry, StockHistoryEntry

logger = structlog.get_logger(__name__)

_PRODUCT_FIELDS = [f.name for f in fields(NormalizedProduct)]
_DATETIME_FIELDS = ("first_seen", "last_checked", "last_updated", "last_price_history_update")


class DocumentStore(Protocol):
    """Persistence interface used by the change-detecting store."""

    async def get_product(self, product_id: str) -> Optional[NormalizedProduct]:
        ...

    async def set_product(self, product: NormalizedProduct) -> None:
        ...

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> None:
        ...

    async def append_stock_history(self, entry: StockHistoryEntry) -> None:
        ...

    async def append_price_history(self, entry: PriceHistoryEntry) -> None:
        ...

    async def update_crawl_request(self, request_id: str, **fields: Any) -> None:
        ...

    async def health(self) -> Dict[str, Any]:
        ...


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InMemoryDocumentStore:
    """Dict-backed store. Rows are copied on the way in and out."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.stock_history: List[StockHistoryEntry] = []
        self.price_history: List[PriceHistoryEntry] = []
        self.crawl_requests: Dict[str, Dict[str, Any]] = {}

    async def get_product(self, product_id: str) -> Optional[NormalizedProduct]:
        row = self.products.get(product_id)
        return NormalizedProduct.from_dict(row) if row is not None else None

    async def set_product(self, product: NormalizedProduct) -> None:
        self.products[product.product_id] = product.to_dict()

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> None:
        row = self.products.get(product_id)
        if row is None:
            raise PersistenceError("update_product", product_id, "product does not exist")
        unknown = set(changes) - set(_PRODUCT_FIELDS)
        if unknown:
            raise PersistenceError("update_product", product_id, f"unknown fields {sorted(unknown)}")
        row.update(changes)

    async def append_stock_history(self, entry: StockHistoryEntry) -> None:
        self.stock_history.append(entry)

    async def append_price_history(self, entry: PriceHistoryEntry) -> None:
        self.price_history.append(entry)

    async def update_crawl_request(self, request_id: str, **fields: Any) -> None:
        self.crawl_requests.setdefault(request_id, {"request_id": request_id}).update(fields)

    async def health(self) -> Dict[str, Any]:
        return {"healthy": True, "backend": "memory", "products": len(self.products)}


class SqlAlchemyDocumentStore:
    """Store on top of the SQLAlchemy async ORM.

    Each operation runs in its own short session, so concurrent site crawls
    never share a session. SQLAlchemy errors surface as PersistenceError.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self.logger = logger.bind(service="sqlalchemy_store")

    @staticmethod
    def _to_product(row: Product) -> NormalizedProduct:
        data = {name: getattr(row, name) for name in _PRODUCT_FIELDS}
        for name in _DATETIME_FIELDS:
            data[name] = _as_utc(data[name])
        return NormalizedProduct.from_dict(data)

    async def get_product(self, product_id: str) -> Optional[NormalizedProduct]:
        try:
            async with self._session_factory() as session:
                row = await session.get(Product, product_id)
                return self._to_product(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError("get_product", product_id, str(e)) from e

    async def set_product(self, product: NormalizedProduct) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(Product(**product.to_dict()))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("set_product", product.product_id, str(e)) from e

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Product, product_id)
                if row is None:
                    raise PersistenceError("update_product", product_id, "product does not exist")
                for name, value in changes.items():
                    if name not in _PRODUCT_FIELDS:
                        raise PersistenceError("update_product", product_id, f"unknown field {name}")
                    setattr(row, name, value)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("update_product", product_id, str(e)) from e

    async def append_stock_history(self, entry: StockHistoryEntry) -> None:
        try:
            async with self._session_factory() as session:
                session.add(StockHistory(**asdict(entry)))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("append_stock_history", entry.product_id, str(e)) from e

    async def append_price_history(self, entry: PriceHistoryEntry) -> None:
        try:
            async with self._session_factory() as session:
                session.add(PriceHistory(**asdict(entry)))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("append_price_history", entry.product_id, str(e)) from e

    async def update_crawl_request(self, request_id: str, **fields: Any) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(CrawlRequest, request_id)
                if row is None:
                    row = CrawlRequest(request_id=request_id)
                    session.add(row)
                for name, value in fields.items():
                    setattr(row, name, value)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("update_crawl_request", request_id, str(e)) from e

    async def list_stock_history(self, product_id: str) -> List[StockHistoryEntry]:
        """Stock transitions of one product, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(StockHistory)
                    .where(StockHistory.product_id == product_id)
                    .order_by(StockHistory.timestamp)
                )
                return [
                    StockHistoryEntry(
                        product_id=row.product_id,
                        product_name=row.product_name,
                        site=row.site,
                        previous_status=row.previous_status,
                        is_in_stock=row.is_in_stock,
                        timestamp=_as_utc(row.timestamp),
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise PersistenceError("list_stock_history", product_id, str(e)) from e

    async def list_price_history(self, product_id: str) -> List[PriceHistoryEntry]:
        """Price observations of one product, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PriceHistory)
                    .where(PriceHistory.product_id == product_id)
                    .order_by(PriceHistory.timestamp)
                )
                return [
                    PriceHistoryEntry(
                        product_id=row.product_id,
                        product_name=row.product_name,
                        site=row.site,
                        price=row.price,
                        currency=row.currency,
                        is_in_stock=row.is_in_stock,
                        timestamp=_as_utc(row.timestamp),
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise PersistenceError("list_price_history", product_id, str(e)) from e

    async def health(self) -> Dict[str, Any]:
        status = await check_database_health(self._session_factory)
        status["backend"] = "sql"
        return status
