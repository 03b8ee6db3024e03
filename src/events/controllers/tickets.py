from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import AUTH
from common.controllers import UserAwareController
from common.throttling import WriteThrottle
from events import models, schema
from events.service import ticket_service


@api_controller("/tickets", auth=AUTH, tags=["Tickets"])
class TicketController(UserAwareController):
    @route.get("/{ticket_id}", url_name="get_ticket", response=schema.UserTicketSchema)
    def get_ticket(self, ticket_id: UUID) -> models.Ticket:
        """Get one of your tickets, including its QR payload."""
        return ticket_service.get_ticket_for_owner(self.user(), ticket_id, allow_holder=True)

    @route.post(
        "/{ticket_id}/transfer",
        url_name="transfer_ticket",
        response=schema.TicketSchema,
        throttle=WriteThrottle(),
    )
    def transfer_ticket(self, ticket_id: UUID, payload: schema.TicketTransferSchema) -> models.Ticket:
        """Give a valid ticket to someone else. The recipient is notified by e-mail."""
        ticket = ticket_service.get_ticket_for_owner(self.user(), ticket_id)
        return ticket_service.transfer(ticket, self.user(), payload.recipient_email, payload.recipient_name)
