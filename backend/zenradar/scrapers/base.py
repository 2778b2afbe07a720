"""Base parser interface and the data structures flowing through a crawl.

All site parsers inherit from BaseParser. A parser turns fetched documents
into RawExtraction records; enrichment turns those into NormalizedProduct
rows that the change-detecting store persists.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog

from zenradar.config import settings
from zenradar.core.exceptions import SiteLevelError, TransientFetchError
from zenradar.scrapers.utils.fetcher import DocumentFetcher, FetchResponse
from zenradar.scrapers.utils.stock import StockSignals
from zenradar.sites.descriptor import SiteDescriptor

CRAWL_SOURCE = "zenradar-crawler"


@dataclass
class RawExtraction:
    """One scraped product or variant, before normalization."""

    name: str
    detail_url: Optional[str]
    price_text: Optional[str] = None
    # Numbers from structured data, preferred over price_text when present
    price_amount: Optional[Decimal] = None
    price_currency: Optional[str] = None
    signals: StockSignals = field(default_factory=StockSignals)
    image_url: Optional[str] = None
    variant_id: Optional[str] = None
    base_name: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name or not self.name.strip():
            raise ValueError("name is required")


@dataclass
class NormalizedProduct:
    """Durable product row, one per variant, keyed by product_id."""

    product_id: str
    name: str
    normalized_name: str
    site: str
    site_name: str
    url: str
    is_in_stock: bool
    price: Optional[str] = None  # canonical text, e.g. "€62.64"
    original_price: Optional[str] = None  # price text as scraped
    price_value: Optional[Decimal] = None  # canonical currency
    currency: str = "EUR"
    image_url: Optional[str] = None
    category: str = "Matcha"
    is_discontinued: bool = False
    variant_id: Optional[str] = None
    base_name: Optional[str] = None  # shared by all variants of one product
    first_seen: Optional[datetime] = None
    last_checked: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    last_price_history_update: Optional[datetime] = None
    crawl_source: str = CRAWL_SOURCE

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.product_id:
            raise ValueError("product_id is required")
        if not self.name:
            raise ValueError("name is required")
        if not isinstance(self.is_in_stock, bool):
            raise ValueError("is_in_stock must be a bool")
        if self.price_value is not None and self.price_value < 0:
            raise ValueError("price_value must be a non-negative Decimal")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NormalizedProduct":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class StockHistoryEntry:
    """Append-only record of an availability transition.

    ``previous_status`` is None for the first sighting of a product.
    """

    product_id: str
    product_name: str
    site: str
    previous_status: Optional[bool]
    is_in_stock: bool
    timestamp: datetime


@dataclass(frozen=True)
class PriceHistoryEntry:
    """Append-only price observation in the canonical currency."""

    product_id: str
    product_name: str
    site: str
    price: Decimal
    currency: str
    is_in_stock: bool
    timestamp: datetime


class BaseParser(ABC):
    """Abstract base class for all site parsers.

    ``parse()`` is pure over one document. ``crawl()`` decides which
    documents to fetch; the default fetches the listing page and parses it.
    Specialized parsers override ``crawl()`` to visit detail pages.
    """

    site_id: str = ""  # Set by specialized parsers registered for one site

    def __init__(self):
        self.logger = structlog.get_logger(__name__).bind(parser=type(self).__name__)

    @abstractmethod
    def parse(self, site: SiteDescriptor, document: str) -> List[RawExtraction]:
        """Turn one fetched document into raw extractions.

        Args:
            site: Descriptor of the site the document came from
            document: HTML text

        Returns:
            List of RawExtraction in document order
        """
        pass

    async def crawl(self, site: SiteDescriptor, fetcher: DocumentFetcher) -> List[RawExtraction]:
        """Fetch and parse everything this parser needs for one site.

        Raises:
            SiteLevelError: If the listing page cannot be fetched
        """
        listing = await self.fetch_listing(site, fetcher)
        extractions = self.parse(site, listing.body)
        self.logger.info("listing_parsed", site=site.site_id, count=len(extractions))
        return extractions

    async def fetch_listing(self, site: SiteDescriptor, fetcher: DocumentFetcher) -> FetchResponse:
        """Fetch the listing page; any failure fails the whole site.

        Raises:
            SiteLevelError: On exhausted retries or an error status
        """
        try:
            response = await fetcher.fetch(
                site.listing_url,
                timeout_ms=settings.FETCH_TIMEOUT_MS,
                headers=dict(site.request_headers),
            )
        except TransientFetchError as e:
            raise SiteLevelError(site.site_id, e.message) from e

        if response.status >= 400:
            raise SiteLevelError(site.site_id, f"listing page returned HTTP {response.status}")
        return response

    async def fetch_detail(
        self, site: SiteDescriptor, fetcher: DocumentFetcher, url: str
    ) -> Optional[FetchResponse]:
        """Fetch a detail page; failures are logged and yield None."""
        try:
            response = await fetcher.fetch(
                url,
                timeout_ms=settings.DETAIL_FETCH_TIMEOUT_MS,
                headers=dict(site.request_headers),
            )
        except TransientFetchError as e:
            self.logger.warning("detail_fetch_failed", site=site.site_id, url=url, error=e.message)
            return None

        if response.status >= 400:
            self.logger.warning("detail_fetch_status", site=site.site_id, url=url, status=response.status)
            return None
        return response
