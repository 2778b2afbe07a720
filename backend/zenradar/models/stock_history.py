"""Stock transition history for products."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from zenradar.models.base import Base, UUIDPrimaryKeyMixin


class StockHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only availability transitions; previous_status is NULL on first sighting."""

    __tablename__ = "stock_history"

    product_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    site: Mapped[str] = mapped_column(String(50), nullable=False)

    previous_status: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_stock_history_product_timestamp", "product_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<StockHistory(product_id={self.product_id}, "
            f"{self.previous_status} -> {self.is_in_stock}, timestamp={self.timestamp})>"
        )
