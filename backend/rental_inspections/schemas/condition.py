"""Condition assessment, location and photo schemas."""

import base64
import binascii
from datetime import datetime
from typing import Annotated, Optional, Union

from pydantic import Field, field_validator

from rental_inspections.schemas.base import BaseSchema
from rental_inspections.models.enums import ItemCondition


class GPSLocation(BaseSchema):
    """Where a submission was captured. Both coordinates are always present."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: datetime
    address: Optional[str] = Field(None, max_length=500)


class AssessedItem(BaseSchema):
    """A single itemized component of the rented product."""

    item_name: str = Field(..., min_length=1, max_length=200)
    condition: ItemCondition
    description: str = ""


class Accessory(BaseSchema):
    """Accessory handed over with the product."""

    name: str = Field(..., min_length=1, max_length=200)
    included: bool
    condition: Optional[ItemCondition] = None


class ConditionAssessment(BaseSchema):
    """Documented state of an item. Immutable once part of a submission."""

    overall_condition: ItemCondition
    items: list[AssessedItem] = Field(default_factory=list)
    accessories: list[Accessory] = Field(default_factory=list)
    known_issues: list[str] = Field(default_factory=list)
    maintenance_history: Optional[str] = None

    @field_validator("known_issues")
    @classmethod
    def drop_blank_issues(cls, value: list[str]) -> list[str]:
        return [issue.strip() for issue in value if issue and issue.strip()]


class PhotoUpload(BaseSchema):
    """A photo that still has to go through the attachment store."""

    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., pattern=r"^image/[a-z0-9.+-]+$")
    content_base64: str = Field(..., min_length=1)

    @field_validator("content_base64")
    @classmethod
    def must_be_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("content_base64 is not valid base64")
        return value

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.content_base64)

    @property
    def size_bytes(self) -> int:
        return len(self.content)


StoredPhotoUrl = Annotated[str, Field(min_length=1, max_length=2048)]

# Either a reference already returned by the attachment store or a pending upload
PhotoInput = Union[StoredPhotoUrl, PhotoUpload]
