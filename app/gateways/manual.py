"""Manual payment gateway adapter for bank transfers."""

from app.gateways.base import GatewayType, GatewayVerification, PaymentGateway


class ManualGateway(PaymentGateway):
    """Manual payment gateway for bank transfers.

    Nothing can be confirmed automatically; an admin verifies the uploaded
    proof instead.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def verify(self, reference: str) -> GatewayVerification:
        return GatewayVerification(
            status="pending",
            reference=reference,
            metadata={
                "type": "bank_transfer",
                "note": "Manual verification required by admin",
            },
        )
