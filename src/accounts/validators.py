import re

from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

PHONE_REGEX = re.compile(r"^\+?\d{7,15}$")  # E.164-ish: +[country][number], up to 15 digits
ACCOUNT_NUMBER_REGEX = re.compile(r"^\d{10}$")  # NUBAN
NIGERIAN_LOCAL_PREFIX = re.compile(r"^0(\d{10})$")


def validate_phone_number(value: str | None) -> None:
    """Validate phone number.

    Args:
        value (str): phone number.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(_("Phone number must be a string."))

    normalized = normalize_phone_number(value)

    if not PHONE_REGEX.fullmatch(normalized):
        raise ValidationError(_("Number format is incorrect."))
    return None


def normalize_phone_number(value: str) -> str:
    """Strip separators and expand local Nigerian numbers (0803...) to +234803...."""
    value = re.sub(r"[ \-()]", "", value.strip())
    if match := NIGERIAN_LOCAL_PREFIX.fullmatch(value):
        return f"+234{match.group(1)}"
    return value


def validate_account_number(value: str) -> str:
    """Bank account numbers are 10-digit NUBANs."""
    if not ACCOUNT_NUMBER_REGEX.fullmatch(value or ""):
        raise ValueError(str(_("Account number must be exactly 10 digits.")))
    return value
