"""Custom validation utilities."""

import re

from app.core.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_PROOF_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_PROOF_TYPES = {"image/jpeg", "image/jpg", "image/png", "application/pdf"}

PROOF_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
}


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_nigerian_phone(phone: str) -> bool:
    """Validate Nigerian phone number.

    Accepted formats:
    - +2348012345678 (international)
    - 08012345678 (local)

    Args:
        phone: Phone number to validate

    Returns:
        bool: True if valid Nigerian phone format
    """
    # Remove spaces and dashes
    cleaned = re.sub(r"[\s\-]", "", phone)

    # International format with +234
    if cleaned.startswith("+234"):
        return len(cleaned) == 14 and cleaned[1:].isdigit()

    # Local format starting with 0
    if cleaned.startswith("0"):
        return len(cleaned) == 11 and cleaned.isdigit()

    return False


def validate_proof_upload(content_type: str | None, size: int) -> str:
    """Check an uploaded payment proof against the type and size limits.

    Returns:
        str: File extension for the stored object

    Raises:
        ValidationError: Unsupported type, empty file or file over 5MB
    """
    if content_type not in ALLOWED_PROOF_TYPES:
        raise ValidationError("Invalid file type. Please upload JPG, PNG, or PDF files only.")
    if size <= 0:
        raise ValidationError("Uploaded file is empty")
    if size > MAX_PROOF_SIZE:
        raise ValidationError("File too large. Maximum size is 5MB.")
    return PROOF_EXTENSIONS[content_type]


def mask_phone(phone: str, visible_chars: int = 4) -> str:
    """Mask a phone number showing only last few characters.

    Returns:
        str: Masked string like '*******5678'
    """
    if len(phone) <= visible_chars:
        return "*" * len(phone)

    masked_length = len(phone) - visible_chars
    return "*" * masked_length + phone[-visible_chars:]
