"""Validator assignment state machine."""

from app.core.exceptions import ValidationError

ASSIGNMENT_TRANSITIONS = {
    "pending": {"in_progress", "completed"},
    "in_progress": {"completed"},
    "completed": set(),
}


def assert_assignment_transition(current: str, target: str) -> None:
    allowed = ASSIGNMENT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValidationError(
            f"Invalid assignment transition: {current} → {target}"
        )
