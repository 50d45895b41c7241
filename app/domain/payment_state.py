"""Payment state machine.

States: not_registered → pending → proof_submitted → completed

``completed`` is terminal. The only backwards edge is admin rejection
(proof_submitted → pending), which callers must request explicitly.
"""

from app.core.exceptions import AlreadyCompletedError, InvalidPaymentStatus

NOT_REGISTERED = "not_registered"
PENDING = "pending"
PROOF_SUBMITTED = "proof_submitted"
COMPLETED = "completed"

PAYMENT_STATUSES = (NOT_REGISTERED, PENDING, PROOF_SUBMITTED, COMPLETED)

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    NOT_REGISTERED: {PENDING, PROOF_SUBMITTED},
    PENDING: {PENDING, PROOF_SUBMITTED, COMPLETED},
    PROOF_SUBMITTED: {PROOF_SUBMITTED, PENDING, COMPLETED},
    COMPLETED: set(),  # Terminal state
}

# Edges only an admin rejection may take
REJECTION_TRANSITIONS = {(PROOF_SUBMITTED, PENDING)}

_RANK = {status: rank for rank, status in enumerate(PAYMENT_STATUSES)}


def payment_rank(status: str) -> int:
    """Position of ``status`` in the forward ordering."""
    try:
        return _RANK[status]
    except KeyError:
        raise InvalidPaymentStatus(f"Unknown payment status: {status}") from None


def can_transition(current: str, target: str, *, rejection: bool = False) -> bool:
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        return False
    if (current, target) in REJECTION_TRANSITIONS:
        return rejection
    return True


def assert_payment_transition(current: str, target: str, *, rejection: bool = False) -> None:
    """Validate a payment status change.

    Raises:
        AlreadyCompletedError: ``current`` is completed
        InvalidPaymentStatus: Edge not in the transition table
    """
    if current == COMPLETED:
        raise AlreadyCompletedError()
    if not can_transition(current, target, rejection=rejection):
        raise InvalidPaymentStatus(f"Invalid payment transition: {current} → {target}")
