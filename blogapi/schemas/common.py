# blogapi/schemas/common.py
"""Common schemas used across multiple modules."""
from pydantic import BaseModel, Field
from typing import Any, Optional


class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Additional error details")


# Shared response documentation for routers
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input or missing dependency"},
    401: {"description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
    412: {"model": ErrorResponse, "description": "Precondition failed"},
}
