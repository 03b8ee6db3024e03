# src/events/admin/event.py
"""Admin classes for events, ticket types, promo codes and the waitlist."""

from django.contrib import admin

from events import models
from events.admin.base import EventLinkMixin, UserLinkMixin


class TicketTypeInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.TicketType
    extra = 0
    fields = ["name", "price", "currency", "total_quantity", "sold_quantity", "reserved_quantity", "is_active"]
    readonly_fields = ["sold_quantity", "reserved_quantity"]


@admin.register(models.Event)
class EventAdmin(admin.ModelAdmin, UserLinkMixin):  # type: ignore[type-arg]
    list_display = ["title", "user_link", "category", "city", "start_datetime", "status", "is_featured"]
    list_filter = ["status", "category", "is_featured", "city"]
    search_fields = ["title", "slug", "venue_name", "organizer__email"]
    readonly_fields = ["slug", "published_at", "created_at", "updated_at"]
    raw_id_fields = ["organizer"]
    date_hierarchy = "start_datetime"
    inlines = [TicketTypeInline]


@admin.register(models.TicketType)
class TicketTypeAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["name", "event_link", "price", "total_quantity", "sold_quantity", "reserved_quantity", "is_active"]
    list_filter = ["is_active", "currency"]
    search_fields = ["name", "event__title"]
    readonly_fields = ["sold_quantity", "reserved_quantity"]
    raw_id_fields = ["event"]


@admin.register(models.PromoCode)
class PromoCodeAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["code", "discount_type", "discount_value", "current_uses", "max_uses", "event_link", "is_active"]
    list_filter = ["discount_type", "is_active"]
    search_fields = ["code", "description"]
    readonly_fields = ["current_uses"]
    raw_id_fields = ["event", "created_by"]


@admin.register(models.WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["email", "event_link", "ticket_type", "quantity", "notified_at", "created_at"]
    list_filter = ["notified_at"]
    search_fields = ["email", "event__title"]
    raw_id_fields = ["event", "ticket_type"]
