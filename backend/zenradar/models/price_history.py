"""Price history tracking for products."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from zenradar.models.base import Base, UUIDPrimaryKeyMixin


class PriceHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only price observations in the canonical currency.

    Written on a price change and periodically without one, so charts get
    a roughly uniform time series.
    """

    __tablename__ = "price_history"

    product_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    site: Mapped[str] = mapped_column(String(50), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, comment="Price at this point in time")
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="EUR")
    is_in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_price_history_product_timestamp", "product_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<PriceHistory(product_id={self.product_id}, price={self.price}, timestamp={self.timestamp})>"
