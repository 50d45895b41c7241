"""Payment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status

from app.api.deps import CurrentPrincipal, get_payment_service
from app.core.middleware import upload_limiter
from app.schemas.payment import (
    GatewayConfirmationResponse,
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentReferenceRequest,
    PaymentRejectRequest,
    PaymentSummaryResponse,
    ProofSubmissionResponse,
)
from app.services.payment_service import (
    GatewayConfirmation,
    PaymentInitialization,
    PaymentService,
    PaymentSummary,
    ProofSubmission,
)
from app.services.storage_service import WHATSAPP_PROOF

router = APIRouter()

Payments = Annotated[PaymentService, Depends(get_payment_service)]


@router.post("/initialize", response_model=PaymentInitializeResponse)
async def initialize_payment(
    data: PaymentInitializeRequest,
    principal: CurrentPrincipal,
    payments: Payments,
) -> PaymentInitialization:
    """Get (or create) the caller's payment reference."""
    return await payments.initialize_payment(principal, amount=data.amount)


@router.post("/proof", response_model=ProofSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def upload_payment_proof(
    principal: CurrentPrincipal,
    _: Annotated[None, Depends(upload_limiter)],
    payments: Payments,
    file: UploadFile = File(...),
) -> ProofSubmission:
    """Upload a bank transfer receipt (JPG, PNG or PDF, max 5MB)."""
    content = await file.read()
    return await payments.upload_and_submit_proof(principal, content, file.content_type)


@router.post("/proof/whatsapp", response_model=ProofSubmissionResponse)
async def submit_whatsapp_proof(
    principal: CurrentPrincipal,
    payments: Payments,
) -> ProofSubmission:
    """Record that the receipt was sent over WhatsApp."""
    return await payments.submit_proof(principal, WHATSAPP_PROOF)


@router.post("/confirm", response_model=GatewayConfirmationResponse)
async def confirm_gateway_payment(
    data: PaymentReferenceRequest,
    principal: CurrentPrincipal,
    payments: Payments,
) -> GatewayConfirmation:
    """Gateway callback: confirm the payment with the gateway and complete it."""
    return await payments.confirm_gateway_payment(principal, data.reference)


@router.get("/me", response_model=PaymentSummaryResponse)
async def get_my_payment(principal: CurrentPrincipal, payments: Payments) -> PaymentSummary:
    return await payments.get_payment_summary(principal)


# ==================== ADMIN ====================


@router.get("/pending", response_model=list[PaymentSummaryResponse])
async def list_pending_payments(principal: CurrentPrincipal, payments: Payments) -> list[PaymentSummary]:
    """Payments with a proof awaiting review."""
    return await payments.list_pending_payments(principal)


@router.post("/verify", response_model=PaymentSummaryResponse)
async def verify_payment(
    data: PaymentReferenceRequest,
    principal: CurrentPrincipal,
    payments: Payments,
) -> PaymentSummary:
    return await payments.verify_payment(principal, data.reference)


@router.post("/reject", response_model=PaymentSummaryResponse)
async def reject_payment(
    data: PaymentRejectRequest,
    principal: CurrentPrincipal,
    payments: Payments,
) -> PaymentSummary:
    return await payments.reject_payment(principal, data.reference, data.reason)


@router.get("/{profile_id}", response_model=PaymentSummaryResponse)
async def get_payment(profile_id: UUID, principal: CurrentPrincipal, payments: Payments) -> PaymentSummary:
    return await payments.get_payment_summary(principal, profile_id)
