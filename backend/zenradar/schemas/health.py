"""Health check schemas."""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
    timestamp: datetime
    store: Dict[str, Any] = {}
