"""Validation utilities for user input.

Provides validation for:
- Phone numbers (international, loosely formatted)
- Password strength
"""

import re
from typing import NamedTuple


PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15
PASSWORD_MIN_LENGTH = 8


class ValidationResult(NamedTuple):
    """Result of a validation check."""

    valid: bool
    message: str | None = None
    formatted: str | None = None


def normalize_phone(phone: str) -> str:
    """Keep a leading ``+`` and the digits, drop everything else.

    Examples:
        >>> normalize_phone("+1 (555) 010-2030")
        '+15550102030'
    """
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}" if phone.strip().startswith("+") else digits


def validate_phone(phone: str) -> ValidationResult:
    """Validate a phone number by digit count (E.164 allows up to 15).

    Examples:
        >>> validate_phone("+44 20 7946 0958").valid
        True
        >>> validate_phone("12-34").message
        'Phone number must have between 7 and 15 digits'
    """
    if re.search(r"[^\d\s()+\-.]", phone):
        return ValidationResult(False, "Phone number contains invalid characters")
    digits = re.sub(r"\D", "", phone)
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        return ValidationResult(
            False,
            f"Phone number must have between {PHONE_MIN_DIGITS} "
            f"and {PHONE_MAX_DIGITS} digits",
        )
    return ValidationResult(True, formatted=normalize_phone(phone))


def validate_password(password: str) -> ValidationResult:
    """Validate password strength.

    Requirements: at least 8 characters, one letter and one digit.

    Examples:
        >>> validate_password("learning123").valid
        True
        >>> validate_password("short1").valid
        False
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(
            False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )
    if not re.search(r"[A-Za-z]", password):
        return ValidationResult(False, "Password must contain at least one letter")
    if not re.search(r"\d", password):
        return ValidationResult(False, "Password must contain at least one number")
    return ValidationResult(True)
