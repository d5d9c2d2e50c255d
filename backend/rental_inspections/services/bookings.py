"""Booking lookup used by the post-rental eligibility gate."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from rental_inspections.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class BookingInfo(BaseModel):
    """The slice of a booking the inspection workflow cares about."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    end_at: datetime = Field(validation_alias=AliasChoices("end_at", "end_date", "endDate"))
    start_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("start_at", "start_date", "startDate"),
    )
    status: Optional[str] = None


class BookingLookup(ABC):
    """Read-only access to bookings."""

    @abstractmethod
    async def get_booking(self, booking_id: str) -> BookingInfo:
        pass


class HttpBookingLookup(BookingLookup):
    """Bookings API client."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_booking(self, booking_id: str) -> BookingInfo:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}/bookings/{booking_id}",
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"[BOOKINGS] Lookup error for {booking_id}: {e}")
            raise UpstreamUnavailable("Booking service unreachable", booking_id=booking_id) from e

        if response.status_code != 200:
            logger.warning(f"[BOOKINGS] Lookup failed for {booking_id}: {response.status_code}")
            raise UpstreamUnavailable(
                f"Booking lookup failed with status {response.status_code}",
                booking_id=booking_id,
            )

        data = response.json()
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        return BookingInfo.model_validate({**data, "id": booking_id})
