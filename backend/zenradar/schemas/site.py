"""Site listing schemas."""

from typing import List

from pydantic import BaseModel, ConfigDict


class SiteResponse(BaseModel):
    """One configured site."""

    model_config = ConfigDict(from_attributes=True)

    site_id: str
    name: str
    base_url: str
    listing_url: str
    default_currency: str
    specialized: bool = False


class SiteListResponse(BaseModel):
    sites: List[SiteResponse]
    total: int
