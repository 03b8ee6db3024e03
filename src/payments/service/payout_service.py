"""Organizer balances, bank accounts and payouts."""

import typing as t
from datetime import timedelta
from decimal import Decimal

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet, Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from accounts.models import OrganizerProfile, User
from accounts.validators import validate_account_number
from common.models import PlatformSettings
from common.utils import quantize_money, to_minor_units
from events.models import Order, OrderStatus
from events.service import pricing
from payments import paystack, tasks
from payments.exceptions import PaymentProcessorError
from payments.models import COMMITTED_STATUSES, Payout, PayoutStatus

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def _sum(qs: QuerySet[t.Any], field: str, condition: Q | None = None) -> Decimal:
    total = qs.aggregate(total=Sum(field, filter=condition))["total"]
    return quantize_money(total or ZERO)


def calculate_balances(organizer: User, platform_settings: PlatformSettings | None = None) -> dict[str, t.Any]:
    """Revenue and payout figures for an organizer.

    Organizer revenue per paid order is its subtotal; fees are paid by the buyer on top.
    Revenue paid before the hold period is settled and can be paid out. Payouts that are
    pending, processing or completed are deducted from the settled amount.
    """
    platform_settings = platform_settings or PlatformSettings.get_solo()
    cutoff = timezone.now() - timedelta(days=platform_settings.payout_hold_days)
    orders = Order.objects.filter(event__organizer=organizer, status=OrderStatus.PAID)
    payouts = Payout.objects.filter(organizer=organizer)

    settled = _sum(orders, "subtotal", Q(paid_at__lte=cutoff))
    pending = _sum(orders, "subtotal", Q(paid_at__gt=cutoff))
    committed = _sum(payouts, "amount", Q(status__in=COMMITTED_STATUSES))
    return {
        "currency": settings.DEFAULT_CURRENCY,
        "gross_revenue": settled + pending,
        "settled_revenue": settled,
        "pending_revenue": pending,
        "available_balance": max(settled - committed, ZERO),
        "total_paid_out": _sum(payouts, "amount", Q(status=PayoutStatus.COMPLETED)),
        "payouts_in_progress": _sum(payouts, "amount", Q(status__in=(PayoutStatus.PENDING, PayoutStatus.PROCESSING))),
        "platform_fees": _sum(orders, "platform_fee"),
        "processing_fees": _sum(orders, "processing_fee"),
        "tickets_sold": pricing.tickets_sold_by_organizer(organizer.id),
        "free_tickets_remaining": pricing.free_tickets_remaining(organizer.id, platform_settings),
        "minimum_payout": platform_settings.minimum_payout,
        "payout_hold_days": platform_settings.payout_hold_days,
    }


def _organizer_profile(organizer: User, *, lock: bool = False) -> OrganizerProfile:
    qs = OrganizerProfile.objects.select_for_update() if lock else OrganizerProfile.objects.all()
    profile = qs.filter(user=organizer).first()
    if profile is None:
        raise HttpError(404, str(_("Organizer profile not found.")))
    return t.cast(OrganizerProfile, profile)


def setup_bank_account(organizer: User, *, account_name: str, account_number: str, bank_code: str) -> OrganizerProfile:
    """Register the organizer's bank account with Paystack and keep the recipient code."""
    profile = _organizer_profile(organizer)
    try:
        validate_account_number(account_number)
    except ValueError as e:
        raise HttpError(400, str(e))
    with paystack.get_client() as client:
        data = client.create_transfer_recipient(name=account_name, account_number=account_number, bank_code=bank_code)
    details = data.get("details") or {}
    profile.payout_details = {
        "recipient_code": data["recipient_code"],
        "account_number": account_number,
        "account_name": details.get("account_name") or account_name,
        "bank_code": bank_code,
        "bank_name": details.get("bank_name") or "",
        "setup_at": timezone.now().isoformat(),
    }
    profile.save()
    logger.info("bank_account_configured", organizer_id=str(organizer.id), bank_code=bank_code)
    return profile


@transaction.atomic
def request_payout(organizer: User, amount: Decimal, recipient_code: str | None = None) -> Payout:
    """Create a PENDING payout and schedule the transfer.

    The organizer profile row is locked so two concurrent requests cannot both spend the same balance.
    """
    profile = _organizer_profile(organizer, lock=True)
    if profile.is_suspended:
        raise HttpError(403, str(_("Suspended organizers cannot request payouts.")))
    platform_settings = PlatformSettings.get_solo()
    amount = quantize_money(amount)
    if amount < platform_settings.minimum_payout:
        raise HttpError(
            400,
            str(_("The minimum payout is {amount}.")).format(amount=platform_settings.minimum_payout),
        )
    recipient = recipient_code or profile.recipient_code
    if not recipient:
        raise HttpError(400, str(_("Add a bank account before requesting a payout.")))
    available = calculate_balances(organizer, platform_settings)["available_balance"]
    if amount > available:
        raise HttpError(
            400, str(_("Insufficient balance. You can withdraw up to {amount}.")).format(amount=available)
        )

    bank_account = {key: value for key, value in (profile.payout_details or {}).items() if key != "recipient_code"}
    payout = Payout.objects.create(
        organizer=organizer, amount=amount, recipient_code=recipient, bank_account=bank_account
    )
    payout_id = str(payout.id)
    transaction.on_commit(lambda: tasks.process_payout.delay(payout_id))
    logger.info("payout_requested", payout_id=payout_id, organizer_id=str(organizer.id), amount=str(amount))
    return payout


def generate_transfer_reference(payout: Payout) -> str:
    return f"payout-{payout.id.hex}"


def process_payout(payout_id: t.Any) -> Payout:
    """Start the transfer for a PENDING payout. Moves it to PROCESSING, or FAILED with the reason.

    Only a definite rejection fails the payout. After a timeout the transfer may still have gone out,
    so the payout stays PROCESSING under its reference until a webhook or ``sync_payout`` settles it.
    """
    with transaction.atomic():
        payout = Payout.objects.select_for_update().get(pk=payout_id)
        if payout.status != PayoutStatus.PENDING:
            return payout
        payout.reference = generate_transfer_reference(payout)
        payout.save(update_fields=["reference", "updated_at"])

    try:
        with paystack.get_client() as client:
            data = client.initiate_transfer(
                amount=to_minor_units(payout.amount),
                recipient=payout.recipient_code,
                reason=f"getiickets payout {payout.id}",
                reference=payout.reference,
            )
    except PaymentProcessorError as e:
        if e.status_code == 400:
            return fail_payout(payout, e.message)
        Payout.objects.filter(pk=payout.pk, status=PayoutStatus.PENDING).update(
            status=PayoutStatus.PROCESSING, updated_at=timezone.now()
        )
        payout.refresh_from_db()
        logger.warning(
            "payout_transfer_unconfirmed", payout_id=str(payout.id), reference=payout.reference, error=e.message
        )
        return payout

    payout.status = PayoutStatus.PROCESSING
    payout.reference = data.get("reference") or payout.reference
    payout.transfer_code = data.get("transfer_code") or ""
    payout.save(update_fields=["status", "reference", "transfer_code", "updated_at"])
    logger.info("payout_processing", payout_id=str(payout.id), reference=payout.reference)
    if data.get("status") == "success":
        return complete_payout(payout)
    return payout


def complete_payout(payout: Payout) -> Payout:
    """Mark a transfer as settled. Completed payouts stay completed."""
    updated = Payout.objects.filter(
        pk=payout.pk, status__in=(PayoutStatus.PENDING, PayoutStatus.PROCESSING)
    ).update(status=PayoutStatus.COMPLETED, processed_at=timezone.now(), failure_reason="", updated_at=timezone.now())
    payout.refresh_from_db()
    if updated:
        logger.info("payout_completed", payout_id=str(payout.id))
    return payout


def fail_payout(payout: Payout, reason: str) -> Payout:
    """Mark a transfer as failed, which frees the amount in the organizer's balance."""
    updated = Payout.objects.filter(pk=payout.pk).exclude(status=PayoutStatus.FAILED).update(
        status=PayoutStatus.FAILED, failure_reason=reason, processed_at=timezone.now(), updated_at=timezone.now()
    )
    payout.refresh_from_db()
    if updated:
        logger.warning("payout_failed", payout_id=str(payout.id), reason=reason)
    return payout


def sync_payout(payout: Payout) -> Payout:
    """Ask Paystack for the transfer status, for when the webhook never arrived."""
    if payout.status != PayoutStatus.PROCESSING or not payout.reference:
        return payout
    try:
        with paystack.get_client() as client:
            data = client.verify_transfer(payout.reference)
    except PaymentProcessorError as e:
        # Paystack has no transfer under this reference, so it never went out.
        if e.processor_status == 404:
            return fail_payout(payout, str(_("The transfer was never created.")))
        raise
    status = data.get("status")
    if status == "success":
        return complete_payout(payout)
    if status in ("failed", "reversed"):
        return fail_payout(payout, data.get("reason") or f"Transfer {status}")
    return payout


def list_payouts(organizer: User, status: str | None = None) -> QuerySet[Payout]:
    qs = Payout.objects.filter(organizer=organizer)
    if status:
        qs = qs.filter(status=status)
    return qs


def get_payout(organizer: User, payout_id: t.Any) -> Payout:
    payout = Payout.objects.filter(pk=payout_id, organizer=organizer).first()
    if payout is None:
        raise HttpError(404, str(_("Payout not found.")))
    return payout
