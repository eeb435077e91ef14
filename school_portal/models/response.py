"""Response envelope shared by every endpoint."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response body.

    Attributes:
        success: Whether the request achieved its purpose
        data: Payload on success (or partial success)
        message: Human-readable outcome summary
        error: Error description on failure
    """

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None


def error_body(error: str, message: Optional[str] = None) -> dict:
    """Build a failure envelope as a plain dict for JSONResponse."""
    return ApiResponse[None](success=False, error=error, message=message).model_dump()
