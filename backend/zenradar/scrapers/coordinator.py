"""Fan-out of per-site crawls with bounded concurrency.

Sites run in fixed-size batches; each batch is awaited completely before
the next starts. A failing site is recorded and never aborts the others.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from zenradar.config import settings
from zenradar.scrapers.scraper_service import CrawlerService, SiteCrawlResult
from zenradar.sites.descriptor import SiteDescriptor

logger = structlog.get_logger(__name__)


@dataclass
class CrawlSummary:
    """Aggregated result of one crawl run."""

    total_products: int = 0
    stock_updates: int = 0
    sites_processed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    sites: Dict[str, SiteCrawlResult] = field(default_factory=dict)
    skipped_sites: List[str] = field(default_factory=list)
    duration: float = 0.0

    def record_success(self, result: SiteCrawlResult) -> None:
        self.sites[result.site_id] = result
        self.total_products += result.products_found
        self.stock_updates += result.stock_updates
        self.sites_processed += 1

    def record_failure(self, site_id: str, error: BaseException) -> None:
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        self.errors.append(
            {
                "site": site_id,
                "error": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "stockUpdates": self.stock_updates,
            "sitesProcessed": self.sites_processed,
            "errors": list(self.errors),
        }


def chunked(items: Sequence[Any], size: int) -> List[List[Any]]:
    size = max(1, size)
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class CrawlCoordinator:
    """Runs site crawls in concurrent batches and aggregates their results.

    Args:
        service: Per-site crawl pipeline
        sites: Configured sites keyed by id
        concurrency: Sites per batch, ``CRAWL_CONCURRENCY`` by default
    """

    def __init__(
        self,
        service: CrawlerService,
        sites: Mapping[str, SiteDescriptor],
        concurrency: Optional[int] = None,
    ):
        self.service = service
        self.sites = dict(sites)
        self.concurrency = concurrency or settings.CRAWL_CONCURRENCY
        self.logger = logger.bind(service="crawl_coordinator")

    def resolve_sites(self, site_ids: Optional[Sequence[str]], summary: CrawlSummary) -> List[SiteDescriptor]:
        """Configured sites to crawl; an empty selection means all of them."""
        if not site_ids:
            return list(self.sites.values())

        targets = []
        for site_id in site_ids:
            site = self.sites.get(site_id)
            if site is None:
                self.logger.warning("unknown_site_skipped", site=site_id)
                summary.skipped_sites.append(site_id)
                continue
            if site not in targets:
                targets.append(site)
        return targets

    async def run(self, site_ids: Optional[Sequence[str]] = None, limit: Optional[int] = None) -> CrawlSummary:
        """Crawl the selected sites.

        Args:
            site_ids: Site ids to crawl, all configured sites when empty
            limit: Per-site cap on processed products

        Returns:
            CrawlSummary with per-site results and errors
        """
        started = time.monotonic()
        summary = CrawlSummary()
        targets = self.resolve_sites(site_ids, summary)

        self.logger.info(
            "crawl_started",
            sites=[site.site_id for site in targets],
            total_sites=len(targets),
            concurrency=self.concurrency,
        )

        for batch in chunked(targets, self.concurrency):
            outcomes = await asyncio.gather(
                *(self.service.crawl_site(site, limit=limit) for site in batch),
                return_exceptions=True,
            )
            for site, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    summary.record_failure(site.site_id, outcome)
                    self.logger.error(
                        "site_crawl_failed",
                        site=site.site_id,
                        error=str(outcome),
                        error_type=type(outcome).__name__,
                    )
                else:
                    summary.record_success(outcome)

        summary.duration = round(time.monotonic() - started, 3)
        self.logger.info(
            "crawl_completed",
            total_products=summary.total_products,
            stock_updates=summary.stock_updates,
            sites_processed=summary.sites_processed,
            errors=len(summary.errors),
            duration=summary.duration,
        )
        return summary
