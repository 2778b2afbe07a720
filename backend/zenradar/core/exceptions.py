"""Custom exception classes for the crawler."""

from typing import Optional


class ZenRadarException(Exception):
    """Base exception for all ZenRadar errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class SiteNotFoundError(ZenRadarException):
    """Raised when a requested site id is not configured."""

    def __init__(self, site_id: str):
        self.site_id = site_id
        super().__init__(f"Site configuration not found: {site_id}")


class TransientFetchError(ZenRadarException):
    """Raised when a document fetch keeps failing after all retries.

    Covers network errors, timeouts and retryable HTTP statuses (5xx, 429).
    """

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"Fetch failed for {url}: {message}")


class MalformedStructuredData(ZenRadarException):
    """Raised when an embedded structured-data blob exists but cannot be parsed.

    Parsers catch this and fall back to the next extraction strategy.
    """

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Malformed structured data in {source}: {message}")


class PersistenceError(ZenRadarException):
    """Raised when a store read or write fails."""

    def __init__(self, operation: str, key: str, message: str):
        self.operation = operation
        self.key = key
        super().__init__(f"Store {operation} failed for {key}: {message}")


class SiteLevelError(ZenRadarException):
    """Raised when a whole site cannot be crawled (listing unreachable, misconfigured)."""

    def __init__(self, site_id: str, message: str):
        self.site_id = site_id
        super().__init__(f"Crawl error for {site_id}: {message}")
