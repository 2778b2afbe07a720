"""Crawl request bookkeeping for triggered crawls."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from zenradar.models.base import Base, TimestampMixin


class CrawlRequest(TimestampMixin, Base):
    """One triggered crawl and its outcome."""

    __tablename__ = "crawl_requests"

    request_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    trigger_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sites: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="running",
        comment="running, completed or failed",
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    total_products: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock_updates: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sites_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CrawlRequest(request_id={self.request_id}, status={self.status})>"
