"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from zenradar.api.v1 import crawl, health, sites

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(sites.router, tags=["sites"])
api_v1_router.include_router(crawl.router, tags=["crawl"])
