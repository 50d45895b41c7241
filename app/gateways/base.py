"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYSTACK = "paystack"
    MANUAL = "manual"


@dataclass
class GatewayVerification:
    """Gateway's view of a transaction."""

    status: str  # "success" is the only status that completes a payment
    reference: str
    amount: int | None = None  # in naira
    paid_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def verify(self, reference: str) -> GatewayVerification:
        """Look up a transaction by our payment reference.

        Args:
            reference: Payment reference issued at initialization

        Returns:
            GatewayVerification with the gateway's status and amount

        Raises:
            httpx.HTTPError: Transport failure or non-2xx response
        """
        pass
