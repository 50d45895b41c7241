"""Scan types and the side effect each one carries."""

from enum import Enum


class ScanType(str, Enum):
    ACCREDITATION = "accreditation"
    BREAKFAST = "breakfast"
    DINNER = "dinner"
    CHECK_IN = "check_in"
    SESSION = "session"


class ScanEffect(str, Enum):
    ACCREDIT = "accredit"
    VALIDATE_MEAL = "validate_meal"
    AUDIT_ONLY = "audit_only"


MEAL_TYPES = frozenset({ScanType.BREAKFAST.value, ScanType.DINNER.value})

ACCREDITATION_STATUSES = ("pending", "completed", "declined")
MEAL_VALIDATION_STATUSES = ("validated", "expired")

# Soft results reported back to the validator
ALREADY_ACCREDITED = "already accredited"
ALREADY_VALIDATED = "already validated"


def effect_for(scan_type: ScanType | str) -> ScanEffect:
    """Side effect a scan of ``scan_type`` applies to the participant."""
    scan_type = ScanType(scan_type)
    if scan_type is ScanType.ACCREDITATION:
        return ScanEffect.ACCREDIT
    if scan_type.value in MEAL_TYPES:
        return ScanEffect.VALIDATE_MEAL
    return ScanEffect.AUDIT_ONLY


def success_message(scan_type: ScanType | str) -> str:
    scan_type = ScanType(scan_type)
    if scan_type is ScanType.ACCREDITATION:
        return "Accreditation completed"
    if scan_type.value in MEAL_TYPES:
        return f"{scan_type.value.capitalize()} validated"
    return f"{scan_type.value.replace('_', ' ').capitalize()} recorded"
