"""Platform administration: statistics, user moderation and organizer verification."""

import typing as t
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import structlog
from django.db import transaction
from django.db.models import Count, DecimalField, Q, QuerySet, Sum, Value
from django.db.models.functions import Coalesce, TruncMonth
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from pydantic import BaseModel

from accounts.models import OrganizerProfile, Role, User, UserRole
from common.models import PlatformSettings
from events.models import PUBLIC_STATUSES, Event, Order, OrderStatus, Ticket
from events.service import update_db_instance

logger = structlog.get_logger(__name__)

SUSPENSION_DAYS = 365
SUSPENDED_FAILED_ATTEMPTS = 999
TOP_LIMIT = 10

_MONEY = DecimalField(max_digits=14, decimal_places=2)
_ZERO = Value(Decimal("0"), output_field=_MONEY)


def _money(field: str, **filters: t.Any) -> Coalesce:
    return Coalesce(Sum(field, filter=Q(**filters) if filters else None), _ZERO, output_field=_MONEY)


def platform_stats() -> dict[str, t.Any]:
    """Headline counters for the console dashboard."""
    paid_orders = Order.objects.paid()
    users = User.objects.aggregate(
        total=Count("id", distinct=True),
        buyers=Count("id", filter=Q(roles__role=Role.BUYER), distinct=True),
        organizers=Count("id", filter=Q(roles__role=Role.ORGANIZER), distinct=True),
        admins=Count("id", filter=Q(roles__role=Role.ADMIN), distinct=True),
    )
    events = Event.objects.aggregate(
        total=Count("id"),
        published=Count("id", filter=Q(status__in=PUBLIC_STATUSES)),
    )
    return {
        "users": users["total"],
        "buyers": users["buyers"],
        "organizers": users["organizers"],
        "admins": users["admins"],
        "events": events["total"],
        "published_events": events["published"],
        "orders": Order.objects.count(),
        "paid_orders": paid_orders.count(),
        "tickets_sold": Ticket.objects.filter(order__status=OrderStatus.PAID).count(),
        "revenue": paid_orders.aggregate(value=_money("total_amount"))["value"],
    }


def _date_range(start: date | None, end: date | None) -> tuple[datetime, datetime]:
    """Turn inclusive dates into an aware half-open range. Defaults to the last 30 days."""
    today = timezone.localdate()
    end = end or today
    start = start or end - timedelta(days=30)
    if start > end:
        raise HttpError(400, str(_("The start date must not be after the end date.")))
    tz = timezone.get_current_timezone()
    return (
        datetime.combine(start, time.min, tzinfo=tz),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz),
    )


def platform_analytics(start: date | None = None, end: date | None = None) -> dict[str, t.Any]:
    """Revenue, tickets and fees for paid orders in a date range, with monthly and top-N breakdowns."""
    since, until = _date_range(start, end)
    orders = Order.objects.paid().filter(paid_at__gte=since, paid_at__lt=until)
    totals = orders.aggregate(
        revenue=_money("total_amount"),
        organizer_revenue=_money("subtotal"),
        platform_fees=_money("platform_fee"),
        processing_fees=_money("processing_fee"),
        discounts=_money("discount_amount"),
        count=Count("id"),
    )
    tickets = Ticket.objects.filter(order__in=orders).count()
    average = (totals["revenue"] / totals["count"]).quantize(Decimal("0.01")) if totals["count"] else Decimal("0")

    by_month = (
        orders.annotate(month=TruncMonth("paid_at"))
        .values("month")
        .annotate(revenue=_money("total_amount"), orders=Count("id"))
        .order_by("month")
    )
    top_events = (
        orders.values("event_id", "event__title")
        .annotate(revenue=_money("total_amount"), orders=Count("id"))
        .order_by("-revenue")[:TOP_LIMIT]
    )
    top_organizers = (
        orders.values("event__organizer_id", "event__organizer__email")
        .annotate(revenue=_money("total_amount"), orders=Count("id"))
        .order_by("-revenue")[:TOP_LIMIT]
    )
    return {
        "start": since.date(),
        "end": (until - timedelta(days=1)).date(),
        "revenue": totals["revenue"],
        "organizer_revenue": totals["organizer_revenue"],
        "platform_fees": totals["platform_fees"],
        "processing_fees": totals["processing_fees"],
        "discounts": totals["discounts"],
        "orders": totals["count"],
        "tickets_sold": tickets,
        "average_order_value": average,
        "revenue_by_month": [
            {"month": row["month"].strftime("%Y-%m"), "revenue": row["revenue"], "orders": row["orders"]}
            for row in by_month
        ],
        "top_events": [
            {"id": row["event_id"], "title": row["event__title"], "revenue": row["revenue"], "orders": row["orders"]}
            for row in top_events
        ],
        "top_organizers": [
            {
                "id": row["event__organizer_id"],
                "email": row["event__organizer__email"],
                "revenue": row["revenue"],
                "orders": row["orders"],
            }
            for row in top_organizers
        ],
    }


# Users


def list_users(role: str | None = None, search: str | None = None) -> QuerySet[User]:
    qs = User.objects.prefetch_related("roles").order_by("-date_joined")
    if role:
        qs = qs.with_role(role)
    if search:
        qs = qs.filter(Q(email__icontains=search) | Q(name__icontains=search) | Q(phone__icontains=search))
    return qs


def get_user(user_id: t.Any) -> User:
    user = User.objects.prefetch_related("roles").filter(pk=user_id).first()
    if user is None:
        raise HttpError(404, str(_("User not found.")))
    return t.cast(User, user)


def suspend_user(admin: User, user: User) -> User:
    """Lock the account for a year. Nothing is deleted and existing sessions stop working."""
    if user.pk == admin.pk:
        raise HttpError(400, str(_("You cannot suspend yourself.")))
    user.locked_until = timezone.now() + timedelta(days=SUSPENSION_DAYS)
    user.failed_login_attempts = SUSPENDED_FAILED_ATTEMPTS
    user.save(update_fields=["locked_until", "failed_login_attempts"])
    logger.warning("user_suspended", user_id=str(user.id), by=str(admin.id))
    return user


def unsuspend_user(admin: User, user: User) -> User:
    user.locked_until = None
    user.failed_login_attempts = 0
    user.save(update_fields=["locked_until", "failed_login_attempts"])
    logger.info("user_unsuspended", user_id=str(user.id), by=str(admin.id))
    return user


@transaction.atomic
def grant_role(admin: User, user: User, role: str) -> User:
    """Grant a role. Organizers also get a pending profile so they can start selling."""
    _user_role, created = UserRole.objects.get_or_create(user=user, role=role, defaults={"granted_by": admin})
    if role == Role.ORGANIZER:
        OrganizerProfile.objects.get_or_create(user=user, defaults={"business_name": user.display_name})
    if created:
        logger.info("role_granted", user_id=str(user.id), role=role, by=str(admin.id))
    return user


def revoke_role(admin: User, user: User, role: str) -> User:
    if user.pk == admin.pk and role == Role.ADMIN:
        raise HttpError(400, str(_("You cannot revoke your own admin role.")))
    deleted, _rows = UserRole.objects.filter(user=user, role=role).delete()
    if deleted:
        logger.info("role_revoked", user_id=str(user.id), role=role, by=str(admin.id))
    return user


# Organizers


def list_organizers(verification_status: str | None = None, search: str | None = None) -> QuerySet[OrganizerProfile]:
    qs = OrganizerProfile.objects.select_related("user").order_by("-created_at")
    if verification_status:
        qs = qs.filter(verification_status=verification_status)
    if search:
        qs = qs.filter(Q(business_name__icontains=search) | Q(user__email__icontains=search))
    return qs


def get_organizer(profile_id: t.Any) -> OrganizerProfile:
    profile = OrganizerProfile.objects.select_related("user").filter(pk=profile_id).first()
    if profile is None:
        raise HttpError(404, str(_("Organizer not found.")))
    return t.cast(OrganizerProfile, profile)


def set_verification(admin: User, profile: OrganizerProfile, verification_status: str) -> OrganizerProfile:
    """Verify or suspend an organizer. Suspended organizers cannot publish or withdraw."""
    allowed = (OrganizerProfile.VerificationStatus.VERIFIED, OrganizerProfile.VerificationStatus.SUSPENDED)
    if verification_status not in allowed:
        raise HttpError(400, str(_("Verification status must be VERIFIED or SUSPENDED.")))
    profile.verification_status = verification_status
    update_fields = ["verification_status", "updated_at"]
    if verification_status == OrganizerProfile.VerificationStatus.VERIFIED:
        profile.verified_at = timezone.now()
        update_fields.append("verified_at")
    profile.save(update_fields=update_fields)
    logger.info(
        "organizer_verification_changed",
        organizer_id=str(profile.user_id),
        status=verification_status,
        by=str(admin.id),
    )
    return profile


# Events and orders


def list_events(status: str | None = None, search: str | None = None) -> QuerySet[Event]:
    qs = Event.objects.select_related("organizer", "organizer__organizer_profile").prefetch_related("ticket_types")
    if status:
        qs = qs.filter(status=status)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(organizer__email__icontains=search))
    return qs


def get_event(event_id: t.Any) -> Event:
    event = Event.objects.select_related("organizer").prefetch_related("ticket_types").filter(pk=event_id).first()
    if event is None:
        raise HttpError(404, str(_("Event not found.")))
    return t.cast(Event, event)


def list_orders() -> QuerySet[Order]:
    return Order.objects.select_related("event", "promo_code").order_by("-created_at")


def get_order(order_id: t.Any) -> Order:
    order = list_orders().filter(pk=order_id).first()
    if order is None:
        raise HttpError(404, str(_("Order not found.")))
    return t.cast(Order, order)


# Settings


def update_settings(admin: User, payload: BaseModel) -> PlatformSettings:
    platform_settings = PlatformSettings.get_solo()
    platform_settings = update_db_instance(platform_settings, payload)
    logger.info("platform_settings_updated", by=str(admin.id), fields=sorted(payload.model_dump(exclude_unset=True)))
    return platform_settings
