"""Base schema utilities."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Naive datetimes are read as UTC so every stored instant is comparable;
    aware values keep their original offset.
    """

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime) and (value.tzinfo is None or value.tzinfo.utcoffset(value) is None):
            return value.replace(tzinfo=timezone.utc)
        return value


class TimestampMixin(BaseModel):
    """Creation and last-transition instants of an aggregate."""

    created_at: datetime
    updated_at: datetime


class IDMixin(BaseModel):
    """Mixin for UUID id field."""

    id: UUID
