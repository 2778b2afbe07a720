"""Configured site listing."""

from typing import Dict

from fastapi import APIRouter, Depends

from zenradar.core.exceptions import SiteNotFoundError
from zenradar.dependencies import get_sites
from zenradar.schemas import SiteListResponse, SiteResponse
from zenradar.scrapers.factory import get_parser_factory
from zenradar.sites import SiteDescriptor

router = APIRouter()


def _to_response(site: SiteDescriptor) -> SiteResponse:
    return SiteResponse(
        site_id=site.site_id,
        name=site.name,
        base_url=site.base_url,
        listing_url=site.listing_url,
        default_currency=site.default_currency,
        specialized=get_parser_factory().has_parser(site.site_id),
    )


@router.get("/sites", response_model=SiteListResponse)
async def list_sites(sites: Dict[str, SiteDescriptor] = Depends(get_sites)):
    """List enabled sites and whether a specialized parser handles them."""
    items = [_to_response(site) for site in sites.values()]
    return SiteListResponse(sites=items, total=len(items))


@router.get("/sites/{site_id}", response_model=SiteResponse)
async def get_site(site_id: str, sites: Dict[str, SiteDescriptor] = Depends(get_sites)):
    site = sites.get(site_id)
    if site is None:
        raise SiteNotFoundError(site_id)
    return _to_response(site)
