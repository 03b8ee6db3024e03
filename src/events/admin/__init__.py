# src/events/admin/__init__.py
from .event import EventAdmin, PromoCodeAdmin, TicketTypeAdmin, WaitlistEntryAdmin
from .order import InventoryReservationAdmin, OrderAdmin, TicketAdmin

__all__ = [
    "EventAdmin",
    "InventoryReservationAdmin",
    "OrderAdmin",
    "PromoCodeAdmin",
    "TicketAdmin",
    "TicketTypeAdmin",
    "WaitlistEntryAdmin",
]
