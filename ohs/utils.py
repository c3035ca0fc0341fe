"""
Utility functions for OHS.
"""

import re
import secrets
import string
import time
from typing import Tuple

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


def random_base36(length: int) -> str:
    return ''.join(secrets.choice(_BASE36) for _ in range(length))


def generate_id() -> str:
    """Unique-enough record id: millisecond timestamp plus random suffix."""
    return to_base36(int(time.time() * 1000)) + random_base36(5)


def validate_national_id(national_id: str, allow_alphanumeric: bool = False) -> Tuple[bool, str]:
    """Validate a worker national ID.

    Args:
        national_id: The ID string to validate
        allow_alphanumeric: If True, allows letters, digits, hyphens, and underscores.
                            If False (default), only digits.

    Returns:
        (is_valid, error_message)

    Note: Leading zeros are significant ("0123" is different from "123").
    """
    if not national_id or not national_id.strip():
        return False, "National ID cannot be empty"

    national_id = national_id.strip()

    if len(national_id) > 20:
        return False, "National ID too long (max 20 characters)"

    if allow_alphanumeric:
        if not all(c.isalnum() or c in '-_' for c in national_id):
            return False, "National ID can only contain letters, digits, hyphens, and underscores"
    elif not national_id.isdigit():
        return False, "National ID must be numerical (digits only)"

    return True, ""


def parse_blood_pressure(bp: str) -> Tuple[int, int]:
    """Parse "120/80" into (systolic, diastolic). Unparseable parts are 0."""
    parts = (bp or '').split('/')
    systolic = safe_int(parts[0]) if parts else 0
    diastolic = safe_int(parts[1]) if len(parts) > 1 else 0
    return systolic, diastolic


def safe_float(value: str, default: float = 0.0) -> float:
    """Safely convert string to float."""
    try:
        cleaned = re.sub(r'[^\d.\-]', '', str(value))
        return float(cleaned) if cleaned else default
    except (ValueError, TypeError):
        return default


def safe_int(value: str, default: int = 0) -> int:
    """Safely convert string to int."""
    try:
        cleaned = re.sub(r'[^\d\-]', '', str(value))
        return int(cleaned) if cleaned else default
    except (ValueError, TypeError):
        return default
