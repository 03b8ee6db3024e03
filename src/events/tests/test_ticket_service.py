import typing as t
from unittest.mock import MagicMock, patch

import pytest
from django.core import mail
from ninja.errors import HttpError

from accounts.models import User
from common.tasks import to_safe_email_address
from events.models import Event, Order, Ticket, TicketStatus
from events.service import ticket_service

pytestmark = pytest.mark.django_db


@pytest.fixture
def ticket(paid_order: Order) -> Ticket:
    """The buyer's own ticket from the paid order."""
    return paid_order.tickets.get(attendee_email=paid_order.customer_email)


@pytest.fixture
def friend_ticket(paid_order: Order) -> Ticket:
    return paid_order.tickets.get(attendee_email="bola@example.com")


class TestIssueTickets:
    def test_returns_existing_tickets(self, paid_order: Order) -> None:
        tickets = ticket_service.issue_tickets(paid_order)

        assert len(tickets) == 2
        assert Ticket.objects.filter(order=paid_order).count() == 2

    def test_ticket_numbers_are_unique(self, paid_order: Order) -> None:
        numbers = list(paid_order.tickets.values_list("ticket_number", flat=True))

        assert len(set(numbers)) == 2
        assert all(number.startswith("T") for number in numbers)

    def test_confirmation_emails_are_sent(self, paid_order: Order) -> None:
        recipients = [message.bcc for message in mail.outbox]

        assert [to_safe_email_address(paid_order.customer_email)] in recipients
        assert [to_safe_email_address(paid_order.event.organizer.email)] in recipients


class TestOwnership:
    def test_buyer_gets_ticket(self, ticket: Ticket, buyer: User) -> None:
        assert ticket_service.get_ticket_for_owner(buyer, ticket.id) == ticket

    def test_holder_needs_allow_holder(self, friend_ticket: Ticket, user_factory: t.Any) -> None:
        bola = user_factory(email="bola@example.com")

        with pytest.raises(HttpError) as exc_info:
            ticket_service.get_ticket_for_owner(bola, friend_ticket.id)
        assert exc_info.value.status_code == 403

        assert ticket_service.get_ticket_for_owner(bola, friend_ticket.id, allow_holder=True) == friend_ticket

    def test_unknown_ticket(self, buyer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            ticket_service.get_ticket_for_owner(buyer, "00000000-0000-4000-8000-000000000000")

        assert exc_info.value.status_code == 404

    def test_tickets_for_user_include_held_tickets(
        self, paid_order: Order, friend_ticket: Ticket, buyer: User, user_factory: t.Any
    ) -> None:
        bola = user_factory(email="bola@example.com")

        assert ticket_service.tickets_for_user(buyer).count() == 2
        assert list(ticket_service.tickets_for_user(bola)) == [friend_ticket]

    def test_pending_orders_have_no_tickets_to_show(self, pending_order: Order, buyer: User) -> None:
        assert not ticket_service.tickets_for_user(buyer).exists()


class TestTransfer:
    @patch("events.service.ticket_service.tasks.send_ticket_transfer_email")
    def test_transfer(
        self, mock_send: MagicMock, ticket: Ticket, buyer: User, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):
            transferred = ticket_service.transfer(ticket, buyer, "New.Holder@example.com", "New Holder")

        assert transferred.status == TicketStatus.VALID
        assert transferred.attendee_email == "new.holder@example.com"
        assert transferred.attendee_name == "New Holder"
        assert transferred.transferred_from == buyer.email
        assert transferred.transferred_at is not None
        mock_send.delay.assert_called_once_with(str(ticket.id), buyer.email)

    def test_only_the_buyer_can_transfer(self, ticket: Ticket, other_organizer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            ticket_service.transfer(ticket, other_organizer, "someone@example.com")

        assert exc_info.value.status_code == 403

    def test_used_ticket(self, ticket: Ticket, buyer: User) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(status=TicketStatus.USED)

        with pytest.raises(HttpError) as exc_info:
            ticket_service.transfer(ticket, buyer, "someone@example.com")

        assert exc_info.value.status_code == 400

    def test_same_holder(self, ticket: Ticket, buyer: User) -> None:
        with pytest.raises(HttpError, match="already held"):
            ticket_service.transfer(ticket, buyer, buyer.email.upper())


class TestCheckIn:
    def test_check_in(self, ticket: Ticket, event: Event) -> None:
        checked = ticket_service.check_in(event, f" {ticket.ticket_number.lower()} ")

        assert checked.status == TicketStatus.USED
        assert checked.checked_in_at is not None

    def test_twice(self, ticket: Ticket, event: Event) -> None:
        ticket_service.check_in(event, ticket.ticket_number)

        with pytest.raises(HttpError) as exc_info:
            ticket_service.check_in(event, ticket.ticket_number)

        assert exc_info.value.status_code == 409

    def test_cancelled_ticket(self, ticket: Ticket, event: Event) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(status=TicketStatus.CANCELLED)

        with pytest.raises(HttpError) as exc_info:
            ticket_service.check_in(event, ticket.ticket_number)

        assert exc_info.value.status_code == 400

    def test_unknown_ticket(self, event: Event) -> None:
        with pytest.raises(HttpError) as exc_info:
            ticket_service.check_in(event, "T000")

        assert exc_info.value.status_code == 404


def test_cancel_tickets(paid_order: Order, ticket: Ticket) -> None:
    Ticket.objects.filter(pk=ticket.pk).update(status=TicketStatus.USED)

    assert ticket_service.cancel_tickets(paid_order) == 1
    assert paid_order.tickets.filter(status=TicketStatus.CANCELLED).count() == 1
