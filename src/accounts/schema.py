"""Schema for accounts module."""

import typing as t
from datetime import datetime

from ninja import ModelSchema, Schema
from pydantic import UUID4, EmailStr, Field, field_validator

from accounts.validators import normalize_phone_number, validate_phone_number
from common.schema import OneToOneFiftyString, OneToTwoFiftyFiveString, StrippedString

from .models import BuyerProfile, OrganizerProfile, User


def _clean_phone(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    validate_phone_number(value)
    return normalize_phone_number(value)


class UserSchema(ModelSchema):
    id: UUID4
    display_name: str
    roles: list[str]

    class Meta:
        model = User
        fields = ["email", "name", "phone", "email_verified", "is_active", "date_joined", "last_login"]

    @staticmethod
    def resolve_roles(obj: User) -> list[str]:
        return obj.role_names()


class MinimalUserSchema(ModelSchema):
    id: UUID4
    display_name: str

    class Meta:
        model = User
        fields = ["email", "name"]


class BuyerProfileSchema(ModelSchema):
    class Meta:
        model = BuyerProfile
        fields = ["first_name", "last_name", "city"]


class OrganizerProfileSchema(ModelSchema):
    id: UUID4
    has_bank_account: bool

    class Meta:
        model = OrganizerProfile
        fields = ["business_name", "bio", "website", "phone", "verification_status", "verified_at", "created_at"]

    @staticmethod
    def resolve_has_bank_account(obj: OrganizerProfile) -> bool:
        return bool(obj.recipient_code)


class MeSchema(UserSchema):
    buyer_profile: BuyerProfileSchema | None = None
    organizer_profile: OrganizerProfileSchema | None = None

    @staticmethod
    def resolve_buyer_profile(obj: User) -> BuyerProfile | None:
        return getattr(obj, "buyer_profile", None)

    @staticmethod
    def resolve_organizer_profile(obj: User) -> OrganizerProfile | None:
        return getattr(obj, "organizer_profile", None)


class RegisterUserSchema(Schema):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=150)
    name: StrippedString | None = Field(None, max_length=255)
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, value: str | None) -> str | None:
        return _clean_phone(value)


class RegisterResponseSchema(Schema):
    message: str
    email: EmailStr
    requires_verification: bool = True


class VerifyEmailSchema(Schema):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class LoginSchema(Schema):
    email: EmailStr
    password: str


class TokenPairSchema(Schema):
    access: str
    refresh: str


class LoginResponseSchema(Schema):
    user: UserSchema
    tokens: TokenPairSchema


class RefreshSchema(Schema):
    refresh: str


class AccessTokenSchema(Schema):
    access: str


class SessionSchema(Schema):
    user_id: UUID4
    email: str
    roles: list[str]
    active_role: str | None
    created_at: datetime
    last_activity: datetime


class SwitchRoleSchema(Schema):
    role: t.Literal["BUYER", "ORGANIZER"]

    @field_validator("role", mode="before")
    @classmethod
    def upper_role(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value


class RequestOrganizerSchema(Schema):
    business_name: OneToTwoFiftyFiveString | None = None
    bio: StrippedString = ""
    website: str = ""
    phone: str = ""


class RolesResponseSchema(Schema):
    message: str
    roles: list[str]


class ProfileUpdateSchema(Schema):
    name: OneToTwoFiftyFiveString | None = None
    phone: str | None = None
    first_name: OneToOneFiftyString | None = None
    last_name: OneToOneFiftyString | None = None
    city: StrippedString | None = Field(None, max_length=100)

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, value: str | None) -> str | None:
        return _clean_phone(value)


class OrganizerProfileUpdateSchema(Schema):
    business_name: OneToTwoFiftyFiveString | None = None
    bio: StrippedString | None = None
    website: str | None = None
    phone: str | None = None
