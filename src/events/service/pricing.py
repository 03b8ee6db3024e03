"""Order pricing.

Sequential arithmetic on ``Decimal``, each step rounded half-up to two places:

1. ``subtotal = price * quantity``
2. ``subtotal -= discount``, floored at zero
3. for a non-zero subtotal, the platform fee applies to the share of the subtotal that falls
   outside the organizer's free tickets, and the processing fee is a percentage plus a flat fee
4. ``total = subtotal + platform_fee + processing_fee``
"""

import typing as t
from decimal import Decimal

from django.db.models import Sum

from common.models import PlatformSettings
from common.utils import quantize_money
from events.models import TicketType

ZERO = Decimal("0")


class Quote(t.NamedTuple):
    unit_price: Decimal
    quantity: int
    gross_amount: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    platform_fee: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    currency: str


def tickets_sold_by_organizer(organizer_id: t.Any) -> int:
    """All tickets the organizer has ever sold, across their events."""
    result = TicketType.objects.filter(event__organizer_id=organizer_id).aggregate(total=Sum("sold_quantity"))
    return result["total"] or 0


def free_tickets_remaining(organizer_id: t.Any, platform_settings: PlatformSettings | None = None) -> int:
    """How many more tickets the organizer can sell without a platform fee."""
    platform_settings = platform_settings or PlatformSettings.get_solo()
    return max(platform_settings.free_tickets_threshold - tickets_sold_by_organizer(organizer_id), 0)


def quote(
    ticket_type: TicketType,
    quantity: int,
    *,
    discount: Decimal = ZERO,
    organizer_id: t.Any = None,
    platform_settings: PlatformSettings | None = None,
) -> Quote:
    """Price ``quantity`` tickets of a type, after a discount already validated by the caller."""
    platform_settings = platform_settings or PlatformSettings.get_solo()
    organizer_id = organizer_id or ticket_type.event.organizer_id

    gross = quantize_money(ticket_type.price * quantity)
    discount = quantize_money(min(max(discount, ZERO), gross))
    subtotal = quantize_money(max(gross - discount, ZERO))

    platform_fee = ZERO
    processing_fee = ZERO
    if subtotal > 0:
        free_left = free_tickets_remaining(organizer_id, platform_settings)
        chargeable_tickets = max(quantity - free_left, 0)
        chargeable_share = subtotal * chargeable_tickets / quantity
        platform_fee = quantize_money(chargeable_share * platform_settings.platform_fee_percent / Decimal("100"))
        processing_fee = quantize_money(
            subtotal * platform_settings.processing_fee_percent / Decimal("100")
            + platform_settings.processing_fee_fixed
        )

    return Quote(
        unit_price=quantize_money(ticket_type.price),
        quantity=quantity,
        gross_amount=gross,
        discount_amount=discount,
        subtotal=subtotal,
        platform_fee=platform_fee,
        processing_fee=processing_fee,
        total_amount=quantize_money(subtotal + platform_fee + processing_fee),
        currency=ticket_type.currency,
    )
