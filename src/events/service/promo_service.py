import typing as t
from decimal import Decimal

import structlog
from django.db import transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from pydantic import BaseModel

from accounts.models import Role, User
from common.utils import quantize_money
from events.exceptions import PromoCodeError
from events.models import DiscountType, Event, Order, OrderStatus, PromoCode
from events.service import update_db_instance

logger = structlog.get_logger(__name__)


class PromoValidation(t.NamedTuple):
    promo_code: PromoCode
    discount_amount: Decimal
    final_amount: Decimal


def compute_discount(promo_code: PromoCode, amount: Decimal) -> Decimal:
    """The discount a code gives on ``amount``, never more than the amount itself."""
    if promo_code.discount_type == DiscountType.PERCENTAGE:
        discount = amount * promo_code.discount_value / Decimal("100")
    else:
        discount = promo_code.discount_value
    return quantize_money(min(discount, amount))


def _applies_to_event(promo_code: PromoCode, event: Event) -> bool:
    if promo_code.event_id is not None:
        return promo_code.event_id == event.id
    if promo_code.created_by_id is None or promo_code.created_by_id == event.organizer_id:
        return True
    return promo_code.created_by.has_role(Role.ADMIN)  # type: ignore[union-attr]


def validate(code: str, event: Event, amount: Decimal, email: str | None = None) -> PromoValidation:
    """Check that a promo code can be applied to an order of ``amount`` for ``event``.

    Checks run in a fixed order and the first failure wins:
    existence, active flag, validity window, event scope, minimum amount, usage cap, per-customer cap.
    """
    promo_code = PromoCode.objects.select_related("created_by").filter(code__iexact=code.strip()).first()
    if promo_code is None:
        raise PromoCodeError(str(_("Promo code not found.")), status_code=404)
    if not promo_code.is_active:
        raise PromoCodeError(str(_("This promo code is no longer active.")))
    now = timezone.now()
    if now < promo_code.valid_from or now > promo_code.valid_until:
        raise PromoCodeError(str(_("This promo code is not valid at this time.")))
    if not _applies_to_event(promo_code, event):
        raise PromoCodeError(str(_("This promo code is not valid for this event.")))
    if promo_code.min_order_amount is not None and amount < promo_code.min_order_amount:
        raise PromoCodeError(
            str(_("Minimum order amount for this promo code is {amount}.")).format(
                amount=promo_code.min_order_amount
            )
        )
    if promo_code.max_uses is not None and promo_code.current_uses >= promo_code.max_uses:
        raise PromoCodeError(str(_("This promo code has reached its usage limit.")))
    if email:
        uses = Order.objects.filter(
            promo_code=promo_code, customer_email__iexact=email, status=OrderStatus.PAID
        ).count()
        if uses >= promo_code.max_uses_per_user:
            raise PromoCodeError(str(_("You have already used this promo code.")))

    discount = compute_discount(promo_code, amount)
    return PromoValidation(
        promo_code=promo_code,
        discount_amount=discount,
        final_amount=quantize_money(max(amount - discount, Decimal("0"))),
    )


def record_use(promo_code_id: t.Any) -> None:
    """Count one more use of a code."""
    PromoCode.objects.filter(pk=promo_code_id).update(current_uses=F("current_uses") + 1)


def list_for_organizer(organizer: User) -> QuerySet[PromoCode]:
    """Codes on the organizer's events plus the global codes they created."""
    return (
        PromoCode.objects.filter(Q(event__organizer=organizer) | Q(event__isnull=True, created_by=organizer))
        .select_related("event")
        .distinct()
    )


def get_for_organizer(organizer: User, promo_code_id: t.Any) -> PromoCode:
    promo_code = list_for_organizer(organizer).filter(pk=promo_code_id).first()
    if promo_code is None:
        raise HttpError(404, str(_("Promo code not found.")))
    return promo_code


def _resolve_event(organizer: User, event_id: t.Any) -> Event | None:
    if event_id is None:
        return None
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise HttpError(404, str(_("Event not found.")))
    if event.organizer_id != organizer.id:
        raise HttpError(403, str(_("You can only create promo codes for your own events.")))
    return event


@transaction.atomic
def create_promo_code(organizer: User, payload: BaseModel) -> PromoCode:
    """Create a code for one of the organizer's events, or a global one."""
    data = payload.model_dump()
    code = data.pop("code").strip().upper()
    if PromoCode.objects.filter(code__iexact=code).exists():
        raise HttpError(400, str(_("A promo code with this code already exists.")))
    event = _resolve_event(organizer, data.pop("event_id", None))
    promo_code = PromoCode.objects.create(code=code, event=event, created_by=organizer, **data)
    logger.info("promo_code_created", promo_code_id=str(promo_code.id), code=code)
    return promo_code


def update_promo_code(organizer: User, promo_code: PromoCode, payload: BaseModel) -> PromoCode:
    data = payload.model_dump(exclude_unset=True)
    if "code" in data:
        code = data["code"].strip().upper()
        if PromoCode.objects.filter(code__iexact=code).exclude(pk=promo_code.pk).exists():
            raise HttpError(400, str(_("A promo code with this code already exists.")))
        data["code"] = code
    if "event_id" in data:
        data["event"] = _resolve_event(organizer, data.pop("event_id"))
    return update_db_instance(promo_code, **data)


def delete_promo_code(promo_code: PromoCode) -> None:
    logger.info("promo_code_deleted", promo_code_id=str(promo_code.id))
    promo_code.delete()
