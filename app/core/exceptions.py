"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    retryable: bool = False

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


# ==================== ACCESS CONTROL ====================


class UnauthorizedError(AppException):
    """No authenticated principal."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(AppException):
    """Principal lacks the role required for the action."""

    def __init__(self, detail: str = "You don't have permission to perform this action") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


# ==================== NOT FOUND ====================


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ProfileNotFoundError(NotFoundError):
    def __init__(self, identifier: str | None = None) -> None:
        super().__init__("Profile", identifier)


class ReferenceNotFoundError(NotFoundError):
    """No profile carries the given payment reference."""

    def __init__(self, reference: str) -> None:
        super().__init__("Payment")
        self.detail = f"No payment found for reference '{reference}'"


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, identifier: str | None = None) -> None:
        super().__init__("Participant")
        self.detail = f"Participant '{identifier}' not found" if identifier else "Participant not found"


class AssignmentNotFoundError(NotFoundError):
    def __init__(self, identifier: str | None = None) -> None:
        super().__init__("Assignment", identifier)


# ==================== IDEMPOTENCY GUARDS ====================


class AlreadyCompletedError(AppException):
    """Payment is completed, no further payment action is allowed."""

    def __init__(self, detail: str = "Payment has already been completed") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyVerifiedError(AppException):
    """Second verification of a reference (possible double-credit upstream)."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Payment '{reference}' has already been verified",
        )


class AlreadyAccreditedError(AppException):
    def __init__(self, detail: str = "already accredited") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyValidatedError(AppException):
    def __init__(self, detail: str = "already validated") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidPaymentStatus(AppException):
    """Invalid payment status for operation."""

    def __init__(self, detail: str = "This operation is not allowed for the current payment status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ==================== STORAGE CONFLICTS ====================


class UniqueConstraintError(AppException):
    """Unique constraint violated in the ledger store."""

    def __init__(self, field: str | None = None, detail: str | None = None) -> None:
        self.field = field
        if detail is None:
            detail = f"A record with this {field} already exists" if field else "Record already exists"
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class DuplicateReferenceError(UniqueConstraintError):
    """Generated payment reference collided with an existing one."""

    retryable = True

    def __init__(self) -> None:
        super().__init__(
            field="payment_reference",
            detail="Payment reference collision, please retry",
        )


# ==================== EXTERNAL ====================


class PaymentError(AppException):
    """Payment gateway reported a non-successful payment."""

    def __init__(self, detail: str = "Payment processing failed") -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    retryable = True

    def __init__(self, service: str, detail: str | None = None) -> None:
        self.service = service
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
