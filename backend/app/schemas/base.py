# backend/app/schemas/base.py
"""Shared base model: snake_case in Python, camelCase on the wire."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Accepts both `user_id` and `userId` on input and serializes by alias
    (FastAPI's response_model default), so responses use camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
