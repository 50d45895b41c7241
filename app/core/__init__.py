"""Core utilities and security modules."""

from app.core.exceptions import (
    AlreadyAccreditedError,
    AlreadyCompletedError,
    AlreadyValidatedError,
    AlreadyVerifiedError,
    AppException,
    DuplicateReferenceError,
    ExternalServiceError,
    ForbiddenError,
    InvalidPaymentStatus,
    NotFoundError,
    PaymentError,
    UnauthorizedError,
    UniqueConstraintError,
    ValidationError,
)
from app.core.permissions import Capability, Principal, Role, authorize
from app.core.security import (
    create_access_token,
    create_principal_token,
    principal_from_token,
    verify_token,
)

__all__ = [
    "AlreadyAccreditedError",
    "AlreadyCompletedError",
    "AlreadyValidatedError",
    "AlreadyVerifiedError",
    "AppException",
    "DuplicateReferenceError",
    "ExternalServiceError",
    "ForbiddenError",
    "InvalidPaymentStatus",
    "NotFoundError",
    "PaymentError",
    "UnauthorizedError",
    "UniqueConstraintError",
    "ValidationError",
    "Capability",
    "Principal",
    "Role",
    "authorize",
    "create_access_token",
    "create_principal_token",
    "principal_from_token",
    "verify_token",
]
