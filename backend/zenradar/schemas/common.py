"""Common Pydantic schemas used across the API."""

from typing import Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error detail for error responses."""

    code: str
    message: str
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard API error response."""

    status: str = "error"
    error: ErrorDetail
