"""Pydantic schemas for API validation."""

from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStatusUpdate,
    AssignmentWithValidatorResponse,
)
from app.schemas.config import (
    ConferenceDetails,
    ConferenceDetailsUpdate,
    ConfigUpdate,
    ConfigValueResponse,
    RegistrationAmountResponse,
)
from app.schemas.payment import (
    GatewayConfirmationResponse,
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentReferenceRequest,
    PaymentRejectRequest,
    PaymentSummaryResponse,
    ProofSubmissionResponse,
)
from app.schemas.profile import ProfileResponse, RegistrationCreate
from app.schemas.scan import (
    MealValidationResponse,
    ScanCreate,
    ScanHistoryItem,
    ScanResultResponse,
)

__all__ = [
    # Assignment
    "AssignmentCreate",
    "AssignmentResponse",
    "AssignmentStatusUpdate",
    "AssignmentWithValidatorResponse",
    # Config
    "ConferenceDetails",
    "ConferenceDetailsUpdate",
    "ConfigUpdate",
    "ConfigValueResponse",
    "RegistrationAmountResponse",
    # Payment
    "GatewayConfirmationResponse",
    "PaymentInitializeRequest",
    "PaymentInitializeResponse",
    "PaymentReferenceRequest",
    "PaymentRejectRequest",
    "PaymentSummaryResponse",
    "ProofSubmissionResponse",
    # Profile
    "ProfileResponse",
    "RegistrationCreate",
    # Scan
    "MealValidationResponse",
    "ScanCreate",
    "ScanHistoryItem",
    "ScanResultResponse",
]
