"""SQLAlchemy models for ZenRadar.

All models are imported here so metadata.create_all() sees every table.
"""

from zenradar.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from zenradar.models.product import Product
from zenradar.models.stock_history import StockHistory
from zenradar.models.price_history import PriceHistory
from zenradar.models.crawl_request import CrawlRequest

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Product",
    "StockHistory",
    "PriceHistory",
    "CrawlRequest",
]
