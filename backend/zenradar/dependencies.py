"""FastAPI dependency injection providers."""

import secrets
from functools import lru_cache
from typing import AsyncGenerator, Dict, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from zenradar.config import settings
from zenradar.db.session import async_session_factory
from zenradar.db.store import DocumentStore, InMemoryDocumentStore, SqlAlchemyDocumentStore
from zenradar.scrapers.utils.fetcher import DocumentFetcher, HttpDocumentFetcher
from zenradar.scrapers.utils.rate_limiter import DomainRateLimiter
from zenradar.sites import SiteDescriptor, load_sites

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_document_store() -> DocumentStore:
    """Process-wide document store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        return InMemoryDocumentStore()
    return SqlAlchemyDocumentStore(async_session_factory)


@lru_cache
def get_rate_limiter() -> DomainRateLimiter:
    """Per-domain limiter shared by every crawl of this process."""
    return DomainRateLimiter()


@lru_cache
def get_sites() -> Dict[str, SiteDescriptor]:
    """Configured sites, loaded once per process."""
    return load_sites(settings.SITES_FILE)


async def get_fetcher() -> AsyncGenerator[DocumentFetcher, None]:
    """Yield an HTTP fetcher for the duration of one request.

    Usage:
        @router.post("/crawl")
        async def trigger(fetcher: DocumentFetcher = Depends(get_fetcher)):
            ...
    """
    async with HttpDocumentFetcher(rate_limiter=get_rate_limiter()) as fetcher:
        yield fetcher


async def verify_crawl_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """Check the bearer token of a crawl trigger.

    Raises 401 if the token is missing and 403 if CRAWL_API_KEY is set and
    the token does not match it.
    """
    if not credentials or not credentials.credentials:
        logger.warning("crawl_auth_missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    configured_key = settings.CRAWL_API_KEY
    if configured_key and not secrets.compare_digest(
        credentials.credentials.encode(), configured_key.encode()
    ):
        logger.warning("crawl_auth_rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return credentials.credentials
