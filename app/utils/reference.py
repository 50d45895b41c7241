"""Payment reference generation utilities."""

import random
import re
import string
import time
from datetime import UTC, datetime

_ALPHABET = string.digits + string.ascii_lowercase

REFERENCE_PATTERN = re.compile(r"^[A-Z0-9]+-\d{4}-[0-9A-Z]+-[A-Z0-9]{4}$")


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_payment_reference(prefix: str = "NAPPS", now: datetime | None = None) -> str:
    """Generate a payment reference.

    Format: ``<PREFIX>-<YYYY>-<base36 ms timestamp>-<4 random chars>``, e.g.
    'NAPPS-2025-LZ3K9Q1A-X7B2'. Uniqueness is backstopped by the database
    constraint, callers retry on collision.

    Args:
        prefix: Reference prefix
        now: Timestamp to encode (defaults to current UTC time)

    Returns:
        str: Upper-case payment reference
    """
    if now is None:
        now = datetime.now(UTC)
        millis = time.time_ns() // 1_000_000
    else:
        millis = int(now.timestamp() * 1000)
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"{prefix}-{now.year}-{to_base36(millis)}-{random_part}".upper()


def validate_reference_format(reference: str) -> bool:
    return bool(REFERENCE_PATTERN.match(reference or ""))
