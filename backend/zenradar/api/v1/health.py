"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from zenradar import __version__
from zenradar.db.store import DocumentStore
from zenradar.dependencies import get_document_store
from zenradar.schemas import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(store: DocumentStore = Depends(get_document_store)):
    """Return service health status.

    Reports "degraded" when the document store does not answer.
    """
    store_status = await store.health()

    return HealthCheckResponse(
        status="healthy" if store_status.get("healthy") else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        store=store_status,
    )
