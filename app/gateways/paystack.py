"""Paystack payment gateway adapter."""

import logging
from datetime import datetime

import httpx

from app.gateways.base import GatewayType, GatewayVerification, PaymentGateway

logger = logging.getLogger(__name__)


class PaystackGateway(PaymentGateway):
    """Paystack transaction verification over the REST API."""

    def __init__(
        self,
        secret_key: str | None,
        base_url: str = "https://api.paystack.co",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self._transport = transport

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    @property
    def is_live(self) -> bool:
        return bool(self.secret_key and self.secret_key.startswith("sk_live_"))

    async def verify(self, reference: str) -> GatewayVerification:
        """Verify a transaction with ``GET /transaction/verify/<reference>``."""
        if not self.secret_key:
            raise httpx.RequestError("Paystack not configured")

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(
                f"/transaction/verify/{reference}",
                headers={"Authorization": f"Bearer {self.secret_key}"},
            )
            response.raise_for_status()
            body = response.json()

        if not body.get("status"):
            logger.warning(f"Paystack verify for {reference} returned: {body.get('message')}")
            return GatewayVerification(status="failed", reference=reference, metadata=body)

        data = body.get("data") or {}
        paid_at = data.get("paid_at")
        amount = data.get("amount")
        return GatewayVerification(
            status=data.get("status", "unknown"),
            reference=data.get("reference", reference),
            amount=amount // 100 if amount is not None else None,  # kobo to naira
            paid_at=datetime.fromisoformat(paid_at.replace("Z", "+00:00")) if paid_at else None,
            metadata=data.get("metadata") or {},
        )
