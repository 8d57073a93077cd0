"""Validation and normalization helpers for user-supplied values."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.utils.exceptions import ValidationError

# PREFIX-SUFFIX, letters/digits only, 3..32 chars overall
REFERRAL_CODE_PATTERN = re.compile(r"^[A-Z0-9]+(-[A-Z0-9]+)?$")
REFERRAL_CODE_MAX_LENGTH = 32

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SLUG_STRIP_PATTERN = re.compile(r"[^a-z0-9]+")

# Referral code prefix: 1-10 upper-case letters or digits
PREFIX_PATTERN = re.compile(r"^[A-Z0-9]{1,10}$")

CENT = Decimal("0.01")


def normalize_code(code: str | None) -> str:
    """
    Normalize referral or coupon code for case-insensitive lookup.

    Args:
        code: Raw code

    Returns:
        Stripped, upper-cased code

    Raises:
        ValidationError: If code is empty
    """
    if not code or not code.strip():
        raise ValidationError("Code is required")
    return code.strip().upper()


def is_valid_referral_code(code: str) -> bool:
    """
    Check referral code format.

    Examples:
        >>> is_valid_referral_code("PROMO-AB12CD34")
        True
        >>> is_valid_referral_code("promo ab")
        False
    """
    if not code or len(code) > REFERRAL_CODE_MAX_LENGTH:
        return False
    return bool(REFERRAL_CODE_PATTERN.match(code))


def normalize_email(email: str | None) -> str:
    """
    Normalize email address.

    Raises:
        ValidationError: If email is malformed
    """
    if not email:
        raise ValidationError("Email is required")
    normalized = email.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError(f"Invalid email address: {email}")
    return normalized


def slugify(name: str) -> str:
    """
    Build URL slug from account name.

    Examples:
        >>> slugify("Acme Coffee Co.")
        'acme-coffee-co'
    """
    return SLUG_STRIP_PATTERN.sub("-", name.lower()).strip("-")


def to_decimal(value: object, field: str = "amount") -> Decimal:
    """
    Convert numeric input to Decimal without float artifacts.

    Raises:
        ValidationError: If value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid {field}: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}")
    return result


def round_money(amount: Decimal) -> Decimal:
    """
    Round to 2 decimal places, half up.

    Examples:
        >>> round_money(Decimal("6.005"))
        Decimal('6.01')
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
