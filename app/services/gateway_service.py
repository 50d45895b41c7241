"""Payment gateway service.

Routes verification to the configured gateway adapter and bounds every call.
No business logic here - only gateway coordination.
"""

import asyncio
import logging

import httpx

from app.config import Settings
from app.core.exceptions import ExternalServiceError
from app.gateways.base import GatewayType, GatewayVerification, PaymentGateway
from app.gateways.manual import ManualGateway
from app.gateways.paystack import PaystackGateway

logger = logging.getLogger(__name__)


def _assert_production_for_live_gateway(gateway: PaymentGateway, environment: str) -> None:
    """Block live-key gateway calls in non-production environments.

    Raises:
        RuntimeError: If a live key is used outside production
    """
    if isinstance(gateway, PaystackGateway) and gateway.is_live and environment != "production":
        raise RuntimeError(
            f"Cannot execute live {gateway.gateway_type.value} gateway operations "
            f"in {environment} environment. Use a test key outside production."
        )


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self, gateway: PaymentGateway, timeout_seconds: float = 10.0, environment: str = "development"):
        self._gateway = gateway
        self._timeout = timeout_seconds
        self._environment = environment

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayService":
        if settings.payment_gateway == GatewayType.PAYSTACK.value:
            gateway: PaymentGateway = PaystackGateway(
                secret_key=settings.paystack_secret_key,
                base_url=settings.paystack_base_url,
                timeout_seconds=settings.gateway_timeout_seconds,
            )
        else:
            gateway = ManualGateway()
        return cls(gateway, settings.gateway_timeout_seconds, settings.environment)

    @property
    def gateway_type(self) -> GatewayType:
        return self._gateway.gateway_type

    async def verify(self, reference: str) -> GatewayVerification:
        """Verify a payment reference with the gateway.

        Raises:
            ExternalServiceError: Timeout or transport failure (retryable)
        """
        _assert_production_for_live_gateway(self._gateway, self._environment)
        service = self._gateway.gateway_type.value
        try:
            result = await asyncio.wait_for(self._gateway.verify(reference), timeout=self._timeout)
        except TimeoutError as e:
            logger.warning(f"{service} verify timed out for {reference}")
            raise ExternalServiceError(service, "Verification timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"{service} verify failed for {reference}: {e}")
            raise ExternalServiceError(service, "Verification request failed") from e

        logger.info(f"{service} verify {reference}: status={result.status} amount={result.amount}")
        return result
