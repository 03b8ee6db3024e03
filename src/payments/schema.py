from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import UUID4, AwareDatetime, EmailStr, Field

from common.schema import OneToTwoFiftyFiveString
from events.models import OrderStatus
from payments.models import Payout


class InitializePaymentSchema(Schema):
    order_id: UUID
    email: EmailStr | None = None


class InitializePaymentResponseSchema(Schema):
    order_id: UUID
    reference: str | None
    authorization_url: str | None = None
    access_code: str | None = None
    status: OrderStatus


class VerifyPaymentResponseSchema(Schema):
    order_id: UUID4
    order_number: str
    status: OrderStatus
    payment_status: str
    paid_at: AwareDatetime | None = None

    @staticmethod
    def resolve_order_id(obj: object) -> UUID:
        return obj.id  # type: ignore[attr-defined,no-any-return]


class WebhookAckSchema(Schema):
    received: bool = True


class BalanceSchema(Schema):
    currency: str
    gross_revenue: Decimal
    settled_revenue: Decimal
    pending_revenue: Decimal
    available_balance: Decimal
    total_paid_out: Decimal
    payouts_in_progress: Decimal
    platform_fees: Decimal
    processing_fees: Decimal
    tickets_sold: int
    free_tickets_remaining: int
    minimum_payout: Decimal
    payout_hold_days: int


class BankAccountSetupSchema(Schema):
    account_name: OneToTwoFiftyFiveString
    account_number: str = Field(..., pattern=r"^\d{10}$")
    bank_code: str = Field(..., min_length=2, max_length=10)


class BankAccountSchema(Schema):
    account_name: str
    account_number: str
    bank_code: str
    bank_name: str = ""
    setup_at: str | None = None

    @staticmethod
    def resolve_account_number(obj: dict[str, str]) -> str:
        number = obj.get("account_number", "")
        return f"******{number[-4:]}" if number else ""


class PayoutRequestSchema(Schema):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    recipient_code: str | None = Field(None, max_length=100)


class PayoutSchema(ModelSchema):
    id: UUID4

    class Meta:
        model = Payout
        fields = [
            "amount",
            "currency",
            "status",
            "reference",
            "failure_reason",
            "processed_at",
            "created_at",
        ]
