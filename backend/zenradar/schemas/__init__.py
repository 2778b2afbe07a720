"""Pydantic schemas for the ZenRadar API.

All request/response models are defined here for easy import.
"""

from zenradar.schemas.common import ErrorDetail, ErrorResponse
from zenradar.schemas.crawl import (
    CrawlFailureResponse,
    CrawlRequestBody,
    CrawlResults,
    CrawlSuccessResponse,
    SiteError,
)
from zenradar.schemas.health import HealthCheckResponse
from zenradar.schemas.site import SiteListResponse, SiteResponse

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    # Crawl
    "CrawlRequestBody",
    "CrawlResults",
    "CrawlSuccessResponse",
    "CrawlFailureResponse",
    "SiteError",
    # Health
    "HealthCheckResponse",
    # Sites
    "SiteResponse",
    "SiteListResponse",
]
