from .event import (
    PUBLIC_STATUSES,
    PURCHASABLE_STATUSES,
    TERMINAL_STATUSES,
    Event,
    EventCategory,
    EventStatus,
    TicketType,
)
from .inventory import InventoryReservation, ReservationStatus
from .order import Order, OrderStatus, generate_order_number
from .promo import DiscountType, PromoCode
from .ticket import Ticket, TicketStatus, generate_ticket_number
from .waitlist import WaitlistEntry

__all__ = [
    # Events
    "PUBLIC_STATUSES",
    "PURCHASABLE_STATUSES",
    "TERMINAL_STATUSES",
    "Event",
    "EventCategory",
    "EventStatus",
    "TicketType",
    # Inventory
    "InventoryReservation",
    "ReservationStatus",
    # Orders
    "Order",
    "OrderStatus",
    "generate_order_number",
    # Promo codes
    "DiscountType",
    "PromoCode",
    # Tickets
    "Ticket",
    "TicketStatus",
    "generate_ticket_number",
    # Waitlist
    "WaitlistEntry",
]
