# backend/app/schemas/errors.py
"""
Pydantic schemas for error responses.

These schemas provide a consistent error format across all API endpoints.
Used by global exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """
    Standard error response format.

    Every non-2xx response carries this body, so clients can branch on
    `error` and show `message`.
    """

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'InstrumentNotFoundError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID, for matching the response to server logs"
    )


class ValidationErrorDetail(BaseModel):
    """
    Validation error response format.

    Used for Pydantic validation errors (422 responses).
    """

    error: str = Field(default="RequestValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="List of validation errors"
    )
    correlation_id: str | None = None
