import typing as t
from decimal import Decimal

from django.db.models import Count, Q, Sum

from events.models import Event, Order, OrderStatus, Ticket, TicketStatus, TicketType

ZERO = Decimal("0")


def event_analytics(event: Event) -> dict[str, t.Any]:
    """Sales figures for one event."""
    paid = Order.objects.filter(event=event, status=OrderStatus.PAID)
    totals = paid.aggregate(
        gross_revenue=Sum("subtotal"),
        discounts=Sum("discount_amount"),
        platform_fees=Sum("platform_fee"),
        processing_fees=Sum("processing_fee"),
        orders=Count("id"),
    )
    status_counts = dict(
        Order.objects.filter(event=event).values_list("status").annotate(count=Count("id")).order_by()
    )
    ticket_stats = Ticket.objects.filter(event=event).aggregate(
        issued=Count("id", filter=~Q(status=TicketStatus.CANCELLED)),
        checked_in=Count("id", filter=Q(status=TicketStatus.USED)),
    )
    revenue_by_type = dict(
        Ticket.objects.filter(event=event, order__status=OrderStatus.PAID)
        .values_list("ticket_type_id")
        .annotate(count=Count("id"))
        .order_by()
    )
    ticket_types = []
    for ticket_type in TicketType.objects.filter(event=event):
        ticket_types.append(
            {
                "id": ticket_type.id,
                "name": ticket_type.name,
                "price": ticket_type.price,
                "total_quantity": ticket_type.total_quantity,
                "sold_quantity": ticket_type.sold_quantity,
                "reserved_quantity": ticket_type.reserved_quantity,
                "available": ticket_type.available,
                "revenue": ticket_type.price * revenue_by_type.get(ticket_type.id, 0),
            }
        )
    return {
        "event_id": event.id,
        "status": event.status,
        "tickets_sold": sum(item["sold_quantity"] for item in ticket_types),
        "tickets_issued": ticket_stats["issued"],
        "checked_in": ticket_stats["checked_in"],
        "gross_revenue": totals["gross_revenue"] or ZERO,
        "discounts": totals["discounts"] or ZERO,
        "platform_fees": totals["platform_fees"] or ZERO,
        "processing_fees": totals["processing_fees"] or ZERO,
        "orders_count": totals["orders"],
        "orders_by_status": status_counts,
        "ticket_types": ticket_types,
    }
