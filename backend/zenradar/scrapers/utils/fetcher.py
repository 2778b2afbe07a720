"""Document fetching over HTTP.

Parsers depend on the ``DocumentFetcher`` protocol only; ``HttpDocumentFetcher``
is the production implementation (httpx + tenacity + per-domain rate limiting).
"""

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import httpx
import structlog

from zenradar.config import settings
from zenradar.core.exceptions import TransientFetchError
from zenradar.scrapers.utils.rate_limiter import DomainRateLimiter
from zenradar.scrapers.utils.retry import RETRYABLE_EXCEPTIONS, build_http_retry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FetchResponse:
    """Fetched document: final URL, HTTP status and body text."""

    status: int
    body: str
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class DocumentFetcher(Protocol):
    """Anything that can fetch a document by URL."""

    async def fetch(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        ...


def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status == 429


class HttpDocumentFetcher:
    """httpx-based fetcher with retry on transient failures.

    Network errors, timeouts, 5xx and 429 are retried with exponential
    backoff; once retries are exhausted a ``TransientFetchError`` is raised.
    Other statuses (including 4xx) are returned to the caller.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[DomainRateLimiter] = None,
        retry_attempts: int = 3,
        retry_min_wait: float = 2,
        retry_max_wait: float = 30,
    ):
        """Initialize fetcher.

        Args:
            client: Shared httpx client; one is created (and owned) when omitted
            rate_limiter: Per-domain limiter, disabled when None
            retry_attempts: Attempts per fetch including the first
            retry_min_wait: Minimum backoff between attempts in seconds
            retry_max_wait: Maximum backoff between attempts in seconds
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.rate_limiter = rate_limiter
        self.logger = logger.bind(service="document_fetcher")
        self._request = build_http_retry(retry_attempts, retry_min_wait, retry_max_wait)(
            self._request_once
        )

    async def _request_once(self, url: str, timeout: float, headers: Dict[str, str]) -> httpx.Response:
        if self.rate_limiter:
            await self.rate_limiter.acquire_for_url(url)

        response = await self._client.get(url, headers=headers, timeout=timeout)
        if _is_retryable_status(response.status_code):
            self.logger.warning("fetch_retryable_status", url=url, status=response.status_code)
            raise httpx.HTTPStatusError(
                f"Retryable status {response.status_code}",
                request=response.request,
                response=response,
            )
        return response

    async def fetch(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResponse:
        """Fetch a document.

        Args:
            url: Document URL
            timeout_ms: Per-request timeout, defaults to FETCH_TIMEOUT_MS
            headers: Headers merged over the default identifying headers

        Returns:
            FetchResponse with status and body

        Raises:
            TransientFetchError: If the fetch keeps failing after all retries
        """
        merged = settings.default_request_headers()
        if headers:
            merged.update(headers)
        timeout = (timeout_ms or settings.FETCH_TIMEOUT_MS) / 1000.0

        try:
            response = await self._request(url, timeout, merged)
        except httpx.HTTPStatusError as e:
            raise TransientFetchError(url, str(e), status=e.response.status_code) from e
        except RETRYABLE_EXCEPTIONS as e:
            raise TransientFetchError(url, f"{type(e).__name__}: {e}") from e

        self.logger.debug("document_fetched", url=url, status=response.status_code, size=len(response.text))
        return FetchResponse(status=response.status_code, body=response.text, url=str(response.url))

    async def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpDocumentFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
