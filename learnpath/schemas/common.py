"""
Shared schema pieces: camelCase serialisation and the success envelope.

Every JSON response carries ``success``; payloads sit under ``data``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Reads ORM objects, accepts snake_case or camelCase, emits camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str
