import typing as t
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import UUID4, AwareDatetime, EmailStr, Field, model_validator

from common.schema import StrippedString
from events.models import DiscountType, PromoCode


class PromoCodeSchema(ModelSchema):
    id: UUID4
    event_id: UUID4 | None = None

    class Meta:
        model = PromoCode
        fields = [
            "code",
            "description",
            "discount_type",
            "discount_value",
            "max_uses",
            "max_uses_per_user",
            "current_uses",
            "valid_from",
            "valid_until",
            "min_order_amount",
            "is_active",
            "created_at",
        ]


class PromoCodeCreateSchema(Schema):
    code: StrippedString = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    description: StrippedString = ""
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    max_uses: int | None = Field(None, ge=1)
    max_uses_per_user: int = Field(1, ge=1)
    valid_from: AwareDatetime
    valid_until: AwareDatetime
    event_id: UUID | None = None
    min_order_amount: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    is_active: bool = True

    @model_validator(mode="after")
    def check_discount(self) -> t.Self:
        """Percentages stay within 100 and the window is ordered."""
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("A percentage discount cannot exceed 100.")
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from.")
        return self


class PromoCodeUpdateSchema(Schema):
    code: StrippedString | None = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    description: StrippedString | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    max_uses: int | None = Field(None, ge=1)
    max_uses_per_user: int | None = Field(None, ge=1)
    valid_from: AwareDatetime | None = None
    valid_until: AwareDatetime | None = None
    event_id: UUID | None = None
    min_order_amount: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    is_active: bool | None = None


class PromoValidateSchema(Schema):
    code: StrippedString = Field(..., min_length=1, max_length=50)
    event_id: UUID
    amount: Decimal = Field(..., ge=0)
    email: EmailStr | None = None


class PromoValidationSchema(Schema):
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    final_amount: Decimal
