"""Crawl trigger endpoint.

The trigger service POSTs here with a bearer token. The crawl runs inside
the request; the response carries counts for the whole run plus a per-site
error list, so partial completion is never hidden behind one flag.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from zenradar.core.exceptions import PersistenceError
from zenradar.db.store import DocumentStore
from zenradar.dependencies import get_document_store, get_fetcher, get_sites, verify_crawl_token
from zenradar.schemas.crawl import (
    CrawlFailureResponse,
    CrawlRequestBody,
    CrawlResults,
    CrawlSuccessResponse,
)
from zenradar.scrapers.coordinator import CrawlCoordinator
from zenradar.scrapers.scraper_service import CrawlerService
from zenradar.scrapers.utils.fetcher import DocumentFetcher
from zenradar.services.product_store import ChangeDetectingStore
from zenradar.sites import SiteDescriptor

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _record_status(store: DocumentStore, request_id: str, **fields: Any) -> None:
    """Update crawl request bookkeeping; failures here never fail the crawl."""
    try:
        await store.update_crawl_request(request_id, **fields)
    except PersistenceError as e:
        logger.warning(
            "crawl_request_update_failed",
            request_id=request_id,
            status=fields.get("status"),
            error=e.message,
        )


@router.post(
    "/crawl",
    response_model=CrawlSuccessResponse,
    responses={500: {"model": CrawlFailureResponse}},
)
async def trigger_crawl(
    body: CrawlRequestBody,
    _token: str = Depends(verify_crawl_token),
    store: DocumentStore = Depends(get_document_store),
    sites: Dict[str, SiteDescriptor] = Depends(get_sites),
    fetcher: DocumentFetcher = Depends(get_fetcher),
):
    """Crawl the requested sites (all configured sites when ``sites`` is empty)."""
    start_ms = int(time.time() * 1000)
    log = logger.bind(request_id=body.request_id)
    log.info(
        "crawl_job_started",
        trigger_type=body.trigger_type,
        sites=body.sites or "all",
        user_id=body.user_id or "system",
    )

    await _record_status(
        store,
        body.request_id,
        status="running",
        trigger_type=body.trigger_type,
        user_id=body.user_id,
        sites=list(body.sites),
        started_at=datetime.now(timezone.utc),
    )

    try:
        service = CrawlerService(ChangeDetectingStore(store), fetcher)
        summary = await CrawlCoordinator(service, sites).run(body.sites)
    except Exception as e:
        duration = int(time.time() * 1000) - start_ms
        log.error("crawl_job_failed", duration_ms=duration, error=str(e), exc_info=True)
        await _record_status(
            store,
            body.request_id,
            status="failed",
            completed_at=datetime.now(timezone.utc),
            error=str(e),
        )
        failure = CrawlFailureResponse(
            error="Crawl job failed",
            request_id=body.request_id,
            duration=duration,
            details=str(e),
        )
        return JSONResponse(status_code=500, content=failure.model_dump(by_alias=True))

    duration = int(time.time() * 1000) - start_ms
    log.info(
        "crawl_job_completed",
        duration_ms=duration,
        products_found=summary.total_products,
        stock_updates=summary.stock_updates,
        errors=len(summary.errors),
    )

    await _record_status(
        store,
        body.request_id,
        status="completed",
        completed_at=datetime.now(timezone.utc),
        total_products=summary.total_products,
        stock_updates=summary.stock_updates,
        sites_processed=summary.sites_processed,
    )

    return CrawlSuccessResponse(
        job_id=f"job_{body.request_id}_{start_ms}",
        request_id=body.request_id,
        duration=duration,
        results=CrawlResults.model_validate(summary.to_dict()),
    )
