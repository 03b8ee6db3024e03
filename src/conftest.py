"""Project-wide fixtures: users with roles, authenticated clients and a live event."""

import typing as t
from datetime import datetime, time, timedelta
from decimal import Decimal

import faker
import pytest
from django.core.cache import cache
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken
from pytest import MonkeyPatch

from accounts.models import OrganizerProfile, Role, User, UserRole
from accounts.service import session_store
from events.models import (
    DiscountType,
    Event,
    EventCategory,
    EventStatus,
    InventoryReservation,
    Order,
    PromoCode,
    TicketType,
)
from events.service import inventory_service, order_service


@pytest.fixture(autouse=True)
def use_local_memory_cache(settings: t.Any) -> t.Iterator[None]:
    """Keep sessions and throttling state in process memory, fresh for every test."""
    settings.CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def increase_rate_limit(monkeypatch: MonkeyPatch) -> None:
    """Increase the rate limits for the throttles so tests are not rejected."""
    throttles = ("AuthThrottle", "UserRegistrationThrottle", "CheckoutThrottle", "WriteThrottle", "WebhookThrottle")
    for throttle in throttles:
        monkeypatch.setattr(f"common.throttling.{throttle}.rate", "1000/min")


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously."""
    from getiickets.celery import app

    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    app.conf.task_always_eager = True
    app.conf.task_eager_propagates = True


class UserFactory:
    """Factory for creating verified users holding roles."""

    fake = faker.Faker()

    def create_user(self, *roles: str, **kwargs: t.Any) -> User:
        kwargs.setdefault("email", self.fake.unique.email())
        kwargs.setdefault("password", "strong-password-123!")
        kwargs.setdefault("name", self.fake.name())
        kwargs.setdefault("email_verified", True)
        user = User.objects.create_user(**kwargs)
        for role in roles or (Role.BUYER,):
            UserRole.objects.create(user=user, role=role)
        if Role.ORGANIZER in roles:
            OrganizerProfile.objects.create(user=user, business_name=f"{user.display_name} Events")
        return user

    def __call__(self, *roles: str, **kwargs: t.Any) -> User:
        return self.create_user(*roles, **kwargs)


@pytest.fixture
def user_factory() -> UserFactory:
    return UserFactory()


@pytest.fixture
def buyer(user_factory: UserFactory) -> User:
    """A verified buyer."""
    return user_factory(Role.BUYER, email="buyer@example.com", name="Ada Buyer")


@pytest.fixture
def organizer(user_factory: UserFactory) -> User:
    """A verified organizer with a pending organizer profile."""
    return user_factory(Role.BUYER, Role.ORGANIZER, email="organizer@example.com", name="Olu Organizer")


@pytest.fixture
def other_organizer(user_factory: UserFactory) -> User:
    return user_factory(Role.BUYER, Role.ORGANIZER, email="rival@example.com")


@pytest.fixture
def admin_user(user_factory: UserFactory) -> User:
    """A platform admin."""
    return user_factory(Role.ADMIN, email="admin@example.com", is_staff=True)


def bearer_client(user: User) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def buyer_client(buyer: User) -> Client:
    """API client authenticated as the buyer."""
    return bearer_client(buyer)


@pytest.fixture
def organizer_client(organizer: User) -> Client:
    """API client authenticated as the organizer."""
    return bearer_client(organizer)


@pytest.fixture
def other_organizer_client(other_organizer: User) -> Client:
    return bearer_client(other_organizer)


@pytest.fixture
def admin_client(admin_user: User) -> Client:
    """API client authenticated as the admin."""
    return bearer_client(admin_user)


@pytest.fixture
def session_client(buyer: User, settings: t.Any) -> Client:
    """API client carrying a session cookie for the buyer."""
    session_id = session_store.create_session(user_id=buyer.id, email=buyer.email, roles=buyer.role_names())
    client = Client()
    client.cookies[settings.SESSION_STORE_COOKIE_NAME] = session_id
    return client


@pytest.fixture
def next_week() -> datetime:
    same_time_next_week = timezone.now() + timedelta(days=7)
    noon = time(hour=12, minute=0)
    return timezone.make_aware(
        datetime.combine(same_time_next_week.date(), noon),
        timezone.get_current_timezone(),
    )


@pytest.fixture
def draft_event(organizer: User, next_week: datetime) -> Event:
    return Event.objects.create(
        organizer=organizer,
        title="Lagos Jazz Night",
        description="An evening of live jazz.",
        category=EventCategory.CONCERT,
        venue_name="Terra Kulture",
        city="Lagos",
        start_datetime=next_week,
        end_datetime=next_week + timedelta(hours=4),
    )


@pytest.fixture
def event(draft_event: Event) -> Event:
    """A LIVE event, on sale."""
    draft_event.status = EventStatus.LIVE
    draft_event.published_at = timezone.now()
    draft_event.save()
    return draft_event


@pytest.fixture
def ticket_type(event: Event) -> TicketType:
    """A 10 000 NGN ticket with 10 seats."""
    return TicketType.objects.create(
        event=event, name="Regular", price=Decimal("10000.00"), total_quantity=10, max_per_order=5
    )


@pytest.fixture
def free_ticket_type(event: Event) -> TicketType:
    return TicketType.objects.create(event=event, name="Free", price=Decimal("0"), total_quantity=5)


@pytest.fixture
def reservation(event: Event, ticket_type: TicketType, buyer: User) -> InventoryReservation:
    """Two seats held for the buyer."""
    return inventory_service.reserve(event, ticket_type.id, 2, user=buyer)


@pytest.fixture
def pending_order(event: Event, ticket_type: TicketType, buyer: User) -> Order:
    """A PENDING order for two regular tickets, waiting for payment."""
    return order_service.create_order(
        event_id=event.id,
        ticket_type_id=ticket_type.id,
        quantity=2,
        customer_email=buyer.email,
        customer_name="Ada Buyer",
        user=buyer,
        attendees=[{"name": "Ada Buyer"}, {"name": "Bola Friend", "email": "bola@example.com"}],
    )


@pytest.fixture
def paid_order(pending_order: Order, django_capture_on_commit_callbacks: t.Any) -> Order:
    """The pending order after a successful payment."""
    with django_capture_on_commit_callbacks(execute=True):
        return order_service.mark_order_paid(pending_order, payment_reference="TKT-1-ABCDEF12")


@pytest.fixture
def promo_code(event: Event, organizer: User) -> PromoCode:
    """10% off the event, twice per customer."""
    return PromoCode.objects.create(
        code="JAZZ10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        max_uses_per_user=2,
        valid_from=timezone.now() - timedelta(days=1),
        valid_until=timezone.now() + timedelta(days=30),
        event=event,
        created_by=organizer,
    )
