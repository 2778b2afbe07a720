"""Pydantic schemas for the crawl trigger endpoint.

Field names are snake_case in Python and camelCase on the wire, matching
the payload the trigger service sends.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CrawlRequestBody(CamelModel):
    """Crawl trigger. An empty ``sites`` list crawls every configured site."""

    request_id: str = Field(..., min_length=1, max_length=100, examples=["req_20240101_0600"])
    trigger_type: str = Field(..., min_length=1, max_length=50, examples=["scheduled", "manual"])
    sites: List[str] = Field(default_factory=list, examples=[["ippodo", "poppatea"]])
    user_id: Optional[str] = Field(None, max_length=100)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SiteError(BaseModel):
    """One failed site."""

    site: str
    error: str
    timestamp: str


class CrawlResults(CamelModel):
    total_products: int = 0
    stock_updates: int = 0
    sites_processed: int = 0
    errors: List[SiteError] = Field(default_factory=list)


class CrawlSuccessResponse(CamelModel):
    success: bool = True
    job_id: str
    request_id: str
    duration: int = Field(..., description="Milliseconds")
    results: CrawlResults


class CrawlFailureResponse(CamelModel):
    success: bool = False
    error: str
    request_id: str
    duration: int = Field(..., description="Milliseconds")
    details: Optional[str] = None
