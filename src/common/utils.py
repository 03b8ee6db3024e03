import secrets
import string
import time
import typing as t
from decimal import ROUND_HALF_UP, Decimal

from django.db import IntegrityError, models, transaction

BASE36_ALPHABET = string.digits + string.ascii_lowercase
CENTS = Decimal("0.01")


def now_millis() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def random_base36(length: int) -> str:
    """A random lowercase base36 string."""
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def quantize_money(value: Decimal | int | str) -> Decimal:
    """Round to two decimal places, half up."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (naira) to minor units (kobo)."""
    return int((quantize_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


T = t.TypeVar("T", bound=models.Model)


def get_or_create_with_race_protection(
    model: type[T],
    lookup_filter: models.Q,
    defaults: dict[str, t.Any],
) -> tuple[T, bool]:
    """Get or create a model instance with protection against race conditions.

    If two requests try to create the same row, the loser hits the unique constraint, and the
    lookup is retried.

    Returns:
        (instance, created)
    """
    if existing := model.objects.filter(lookup_filter).first():  # type: ignore[attr-defined]
        return existing, False
    try:
        with transaction.atomic():
            return model.objects.create(**defaults), True  # type: ignore[attr-defined]
    except IntegrityError:
        return model.objects.get(lookup_filter), False  # type: ignore[attr-defined]
