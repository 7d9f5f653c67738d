# backend/app/schemas/users.py
"""Pydantic schemas for user registration."""

import datetime as dt

from pydantic import Field

from app.schemas.base import CamelModel


class UserCreate(CamelModel):
    """
    Request body for POST /api/user.

    Fields are optional here so that a missing value is reported by the
    service as a 400, the same as a blank one.
    """

    name: str | None = Field(
        default=None,
        max_length=200,
        description="Display name",
        examples=["Asha Verma"],
    )
    email: str | None = Field(
        default=None,
        max_length=320,
        description="Unique email address",
        examples=["asha@example.com"],
    )


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    created_at: dt.datetime = Field(..., description="Registration time (UTC)")
