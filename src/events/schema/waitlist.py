from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import UUID4, EmailStr, Field

from common.schema import StrippedString
from events.models import WaitlistEntry


class WaitlistJoinSchema(Schema):
    email: EmailStr
    phone: StrippedString = Field("", max_length=20)
    ticket_type_id: UUID | None = None
    quantity: int = Field(1, ge=1, le=10)


class WaitlistEntrySchema(ModelSchema):
    id: UUID4
    event_id: UUID4
    ticket_type_id: UUID4 | None = None

    class Meta:
        model = WaitlistEntry
        fields = ["email", "phone", "quantity", "notified_at", "created_at"]
