"""Per-site crawl pipeline.

This service connects the parser layer with the change-detecting store.
It handles the end-to-end flow for one site: fetch and parse, enrich each
raw extraction, derive its key, then upsert.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from zenradar.core.exceptions import PersistenceError
from zenradar.scrapers.base import NormalizedProduct, RawExtraction
from zenradar.scrapers.factory import ParserFactory, get_parser_factory
from zenradar.scrapers.utils.fetcher import DocumentFetcher
from zenradar.scrapers.utils.identity import derive_key, normalize_name
from zenradar.scrapers.utils.images import ImagePipeline, PassthroughImagePipeline
from zenradar.scrapers.utils.normalizer import CategoryClassifier, PriceNormalizer, absolute_url
from zenradar.scrapers.utils.stock import StockClassifier
from zenradar.services.product_store import ChangeDetectingStore
from zenradar.sites.descriptor import SiteDescriptor

logger = structlog.get_logger(__name__)


@dataclass
class SiteCrawlResult:
    """Outcome of crawling one site."""

    site_id: str
    products_found: int = 0
    stock_updates: int = 0
    new_products: int = 0
    persistence_errors: int = 0
    product_errors: int = 0
    duplicates_skipped: int = 0
    duration: float = 0.0
    product_ids: List[str] = field(default_factory=list)


class CrawlerService:
    """Runs fetch -> parse -> enrich -> upsert for one site at a time.

    Args:
        store: Change-detecting store products are merged into
        fetcher: Document fetcher shared by all sites of a run
        image_pipeline: Image boundary, passthrough by default
        factory: Parser registry, the global one by default
    """

    def __init__(
        self,
        store: ChangeDetectingStore,
        fetcher: DocumentFetcher,
        image_pipeline: Optional[ImagePipeline] = None,
        factory: Optional[ParserFactory] = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.image_pipeline = image_pipeline or PassthroughImagePipeline()
        self.factory = factory or get_parser_factory()
        self.logger = logger.bind(service="crawler_service")

    async def crawl_site(self, site: SiteDescriptor, limit: Optional[int] = None) -> SiteCrawlResult:
        """Crawl one site and persist what it lists.

        Args:
            site: Site to crawl
            limit: Process at most this many extractions

        Returns:
            SiteCrawlResult with counters for the site

        Raises:
            SiteLevelError: If the listing page cannot be fetched
        """
        started = time.monotonic()
        log = self.logger.bind(site=site.site_id)
        log.info("site_crawl_started", url=site.listing_url)

        parser = self.factory.create_parser(site.site_id)
        extractions = await parser.crawl(site, self.fetcher)
        if limit is not None:
            extractions = extractions[:limit]

        result = SiteCrawlResult(site_id=site.site_id)
        seen = set()
        now = datetime.now(timezone.utc)

        for extraction in extractions:
            try:
                product = await self.enrich(site, extraction)
                if product.product_id in seen:
                    result.duplicates_skipped += 1
                    log.debug("duplicate_product_skipped", product_id=product.product_id)
                    continue
                seen.add(product.product_id)
                result.products_found += 1

                outcome = await self.store.upsert(product.product_id, product, now=now)
            except PersistenceError as e:
                result.persistence_errors += 1
                log.error(
                    "product_upsert_failed",
                    product_id=e.key,
                    operation=e.operation,
                    error=e.message,
                )
                continue
            except Exception as e:
                result.product_errors += 1
                log.error(
                    "product_processing_failed",
                    name=extraction.name,
                    url=extraction.detail_url,
                    error=str(e),
                    exc_info=True,
                )
                continue

            result.product_ids.append(product.product_id)
            if outcome.is_new:
                result.new_products += 1
            # Price-only changes land in price history but are not stock updates
            if outcome.is_new or outcome.stock_changed:
                result.stock_updates += 1

        result.duration = round(time.monotonic() - started, 3)
        log.info(
            "site_crawl_completed",
            products=result.products_found,
            stock_updates=result.stock_updates,
            new_products=result.new_products,
            persistence_errors=result.persistence_errors,
            product_errors=result.product_errors,
            duration=result.duration,
        )
        return result

    async def enrich(self, site: SiteDescriptor, extraction: RawExtraction) -> NormalizedProduct:
        """Turn one raw extraction into a keyed, normalized product."""
        price = PriceNormalizer.normalize(
            extraction.price_text,
            site,
            amount=extraction.price_amount,
            currency=extraction.price_currency,
        )

        price_hint = extraction.price_text
        if price_hint is None and extraction.price_amount is not None:
            price_hint = str(extraction.price_amount)
        in_stock = StockClassifier.classify(
            extraction.signals.element_text,
            extraction.signals,
            site,
            price_text=price_hint,
        )

        detail_url = extraction.detail_url or site.listing_url
        key = derive_key(detail_url, extraction.name, site.site_id, extraction.variant_id)

        image_url = None
        if extraction.image_url:
            raw_image = absolute_url(extraction.image_url, site.base_url) or extraction.image_url
            image_url = await self.image_pipeline.store(raw_image, key)

        base_name = extraction.base_name or extraction.name
        return NormalizedProduct(
            product_id=key,
            name=extraction.name,
            normalized_name=normalize_name(extraction.name),
            site=site.site_id,
            site_name=site.name,
            url=detail_url,
            is_in_stock=in_stock,
            price=price.text,
            original_price=price.original,
            price_value=price.value,
            currency=price.currency,
            image_url=image_url,
            category=CategoryClassifier.classify(base_name),
            variant_id=extraction.variant_id,
            base_name=base_name,
        )
