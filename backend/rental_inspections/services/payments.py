"""Payment gateway for third-party inspections."""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

import httpx
from pydantic import BaseModel, ConfigDict

from rental_inspections.core.errors import PaymentRequired, UpstreamUnavailable
from rental_inspections.models.enums import PaymentStatus

logger = logging.getLogger(__name__)


class PaymentReceipt(BaseModel):
    """Outcome of a charge."""

    model_config = ConfigDict(extra="ignore")

    receipt_id: Optional[str] = None
    status: PaymentStatus
    amount_cents: int
    currency: str


class PaymentGateway(ABC):
    """Payment capture is external; the workflow only needs status and charge.

    A charge repeated with the same ``idempotency_key`` must return the
    original receipt instead of capturing again.
    """

    @abstractmethod
    async def get_inspection_payment_status(self, inspection_id: UUID) -> PaymentStatus:
        pass

    @abstractmethod
    async def charge(
        self,
        inspection_id: UUID,
        payment_method_id: str,
        amount_cents: int,
        currency: str,
        provider: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentReceipt:
        pass


class HttpPaymentGateway(PaymentGateway):
    """Payments API client."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_inspection_payment_status(self, inspection_id: UUID) -> PaymentStatus:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}/third-party-inspections/{inspection_id}/payment-status",
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"[PAYMENTS] Status lookup error for {inspection_id}: {e}")
            raise UpstreamUnavailable("Payment service unreachable") from e

        if response.status_code != 200:
            raise UpstreamUnavailable(f"Payment status lookup failed with status {response.status_code}")
        data = response.json()
        return PaymentStatus(data.get("payment_status", data.get("status")))

    async def charge(
        self,
        inspection_id: UUID,
        payment_method_id: str,
        amount_cents: int,
        currency: str,
        provider: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentReceipt:
        logger.info(f"[PAYMENTS] Charging {amount_cents} {currency} for inspection {inspection_id}")
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/third-party-inspections/{inspection_id}/pay",
                    json={
                        "payment_method_id": payment_method_id,
                        "amount": amount_cents,
                        "currency": currency,
                        "provider": provider,
                    },
                    headers={"Idempotency-Key": idempotency_key} if idempotency_key else None,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"[PAYMENTS] Charge error for {inspection_id}: {e}")
            raise UpstreamUnavailable("Payment service unreachable") from e

        if response.status_code == 402:
            raise PaymentRequired("Payment was declined", field="payment_method_id")
        if response.status_code not in (200, 201):
            logger.warning(f"[PAYMENTS] Charge failed for {inspection_id}: {response.status_code}")
            raise UpstreamUnavailable(f"Payment failed with status {response.status_code}")

        data = response.json()
        return PaymentReceipt(
            receipt_id=data.get("receipt_id") or data.get("id"),
            status=PaymentStatus(data.get("status", PaymentStatus.PAID.value)),
            amount_cents=amount_cents,
            currency=currency,
        )
