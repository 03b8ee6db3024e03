from datetime import date, datetime
from decimal import Decimal

from ninja import ModelSchema, Schema
from pydantic import UUID4, EmailStr, Field

from accounts.models import OrganizerProfile, Role, User
from accounts.schema import MinimalUserSchema, UserSchema
from common.models import PlatformSettings
from events.models import EventStatus, OrderStatus
from events.schema import OrganizerEventSchema


class PlatformStatsSchema(Schema):
    users: int
    buyers: int
    organizers: int
    admins: int
    events: int
    published_events: int
    orders: int
    paid_orders: int
    tickets_sold: int
    revenue: Decimal


class MonthlyRevenueSchema(Schema):
    month: str
    revenue: Decimal
    orders: int


class TopEventSchema(Schema):
    id: UUID4
    title: str
    revenue: Decimal
    orders: int


class TopOrganizerSchema(Schema):
    id: UUID4
    email: str
    revenue: Decimal
    orders: int


class PlatformAnalyticsSchema(Schema):
    start: date
    end: date
    revenue: Decimal
    organizer_revenue: Decimal
    platform_fees: Decimal
    processing_fees: Decimal
    discounts: Decimal
    orders: int
    tickets_sold: int
    average_order_value: Decimal
    revenue_by_month: list[MonthlyRevenueSchema]
    top_events: list[TopEventSchema]
    top_organizers: list[TopOrganizerSchema]


class AdminUserSchema(UserSchema):
    locked_until: datetime | None = None
    failed_login_attempts: int
    is_suspended: bool

    @staticmethod
    def resolve_is_suspended(obj: User) -> bool:
        return obj.is_locked()


class RoleChangeSchema(Schema):
    role: Role


class AdminOrganizerSchema(ModelSchema):
    id: UUID4
    user: MinimalUserSchema
    has_bank_account: bool

    class Meta:
        model = OrganizerProfile
        fields = [
            "business_name",
            "bio",
            "website",
            "phone",
            "verification_status",
            "verified_at",
            "created_at",
        ]

    @staticmethod
    def resolve_has_bank_account(obj: OrganizerProfile) -> bool:
        return bool(obj.recipient_code)


class VerificationChangeSchema(Schema):
    verification_status: OrganizerProfile.VerificationStatus


class AdminEventSchema(OrganizerEventSchema):
    organizer: MinimalUserSchema


class EventModerationSchema(Schema):
    status: EventStatus
    reason: str = ""


class FeaturedSchema(Schema):
    is_featured: bool


class OrderStatusChangeSchema(Schema):
    status: OrderStatus
    reason: str = ""


class PlatformSettingsSchema(ModelSchema):
    class Meta:
        model = PlatformSettings
        fields = [
            "platform_fee_percent",
            "processing_fee_percent",
            "processing_fee_fixed",
            "free_tickets_threshold",
            "minimum_payout",
            "payout_hold_days",
            "live_emails",
            "frontend_base_url",
            "internal_catchall_email",
            "updated_at",
        ]


class PlatformSettingsUpdateSchema(Schema):
    platform_fee_percent: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    processing_fee_percent: Decimal | None = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
    processing_fee_fixed: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    free_tickets_threshold: int | None = Field(None, ge=0)
    minimum_payout: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    payout_hold_days: int | None = Field(None, ge=0)
    live_emails: bool | None = None
    frontend_base_url: str | None = Field(None, max_length=200)
    internal_catchall_email: EmailStr | None = None
