"""Product model: current state of one product variant on one site."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from zenradar.models.base import Base, TimestampMixin


class Product(TimestampMixin, Base):
    """Product scraped from a monitored shop.

    Keyed by the derived product_id; one row per variant. Rows are merged
    on every crawl and never deleted by the crawler.
    """

    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(String(200), primary_key=True)

    # Product info
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    site: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    site_name: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="Matcha")
    variant_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    base_name: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True, index=True, comment="Name shared by all variants"
    )

    # Pricing
    price: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Canonical price text")
    original_price: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="Price text as scraped")
    price_value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True, comment="Price in the canonical currency"
    )
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="EUR")

    # Status
    is_in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_discontinued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Crawl timestamps
    first_seen: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_checked: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_price_history_update: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    crawl_source: Mapped[str] = mapped_column(String(50), nullable=False, default="zenradar-crawler")

    __table_args__ = (
        Index("idx_products_site_stock", "site", "is_in_stock"),
    )

    def __repr__(self) -> str:
        return f"<Product(product_id={self.product_id}, site={self.site}, in_stock={self.is_in_stock})>"
