"""Horiishichimeien parser.

The listing is a Shopify collection priced in yen. Cards without a visible
yen price are completed from the product page. The store's JPY conversion
and minor-unit quirk are declared on its SiteDescriptor.
"""

import asyncio
import re
from typing import List, Optional

from bs4 import Tag

from zenradar.config import settings
from zenradar.scrapers.base import RawExtraction
from zenradar.scrapers.generic import GenericParser
from zenradar.scrapers.utils.fetcher import DocumentFetcher
from zenradar.scrapers.utils.html import make_soup
from zenradar.sites.descriptor import SiteDescriptor

DETAIL_PRICE_SELECTORS = (
    ".price__current .money",
    ".price .money",
    ".product-price .money",
    ".price-item--regular",
    "[data-price]",
    ".money",
)

_YEN_RE = re.compile(r"[¥￥]\s*\d{1,3}(?:,\d{3})*")
_LEADING_CATEGORY = re.compile(r"^(?:matcha|tea)\s+", re.IGNORECASE)


def yen_price_from_page(document: str) -> Optional[str]:
    """First yen price on a product page, e.g. "¥3,240"."""
    soup = make_soup(document)
    for selector in DETAIL_PRICE_SELECTORS:
        for element in soup.select(selector):
            text = element.get_text(" ").strip()
            if _YEN_RE.search(text):
                return text
    body = soup.body or soup
    match = _YEN_RE.search(body.get_text(" "))
    return match.group(0) if match else None


class HoriishichimeienParser(GenericParser):
    """Listing parser with a detail-page fallback for missing yen prices."""

    site_id = "horiishichimeien"

    def extract_container(self, site: SiteDescriptor, container: Tag) -> Optional[RawExtraction]:
        extraction = super().extract_container(site, container)
        if extraction is None:
            return None
        # Product cards link to /products/; anything else is a banner or collection tile
        if not extraction.detail_url or "/products/" not in extraction.detail_url:
            return None
        cleaned = _LEADING_CATEGORY.sub("", extraction.name).strip()
        if len(cleaned) >= 2:
            extraction.name = cleaned
            extraction.base_name = cleaned
        return extraction

    async def crawl(self, site: SiteDescriptor, fetcher: DocumentFetcher) -> List[RawExtraction]:
        extractions = await super().crawl(site, fetcher)
        missing = [e for e in extractions if not (e.price_text and _YEN_RE.search(e.price_text))]

        batch_size = max(1, settings.DETAIL_BATCH_SIZE)
        for start in range(0, len(missing), batch_size):
            batch = missing[start:start + batch_size]
            prices = await asyncio.gather(
                *(self._detail_price(site, fetcher, e) for e in batch),
                return_exceptions=True,
            )
            for extraction, price in zip(batch, prices):
                if isinstance(price, Exception):
                    self.logger.warning(
                        "detail_price_failed", site=site.site_id, url=extraction.detail_url, error=str(price)
                    )
                elif price:
                    extraction.price_text = price

        return extractions

    async def _detail_price(self, site: SiteDescriptor, fetcher: DocumentFetcher, extraction: RawExtraction) -> Optional[str]:
        response = await self.fetch_detail(site, fetcher, extraction.detail_url)
        if response is None:
            return None
        return yen_price_from_page(response.body)
