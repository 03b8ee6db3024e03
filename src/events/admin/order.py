# src/events/admin/order.py
"""Admin classes for orders, tickets and reservations."""

from django.contrib import admin

from events import models
from events.admin.base import EventLinkMixin


class TicketInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.Ticket
    extra = 0
    can_delete = False
    fields = ["ticket_number", "ticket_type", "attendee_email", "status", "checked_in_at"]
    readonly_fields = fields


@admin.register(models.Order)
class OrderAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["order_number", "event_link", "customer_email", "total_amount", "status", "paid_at", "created_at"]
    list_filter = ["status", "currency"]
    search_fields = ["order_number", "customer_email", "customer_name", "payment_reference"]
    readonly_fields = [
        "order_number",
        "subtotal",
        "discount_amount",
        "platform_fee",
        "processing_fee",
        "total_amount",
        "payment_reference",
        "paid_at",
        "ip_address",
        "user_agent",
        "created_at",
    ]
    raw_id_fields = ["event", "user", "promo_code"]
    inlines = [TicketInline]


@admin.register(models.Ticket)
class TicketAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["ticket_number", "event_link", "attendee_email", "status", "checked_in_at"]
    list_filter = ["status"]
    search_fields = ["ticket_number", "attendee_email", "order__order_number"]
    readonly_fields = ["ticket_number", "qr_code", "transferred_from", "transferred_at", "checked_in_at"]
    raw_id_fields = ["order", "event", "ticket_type"]


@admin.register(models.InventoryReservation)
class InventoryReservationAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["id", "ticket_type", "quantity", "status", "expires_at", "order"]
    list_filter = ["status"]
    raw_id_fields = ["event", "ticket_type", "order", "user"]
