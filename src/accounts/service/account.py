"""Service layer for accounts: registration, email verification, login and profiles."""

import secrets
import typing as t
from datetime import timedelta

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError

from accounts import schema, tasks
from accounts.exceptions import AccountLockedError, EmailNotVerifiedError
from accounts.models import BuyerProfile, OrganizerProfile, Role, User, UserRole

logger = structlog.get_logger(__name__)


def generate_verification_code() -> str:
    """A random six digit code."""
    return f"{secrets.randbelow(900000) + 100000}"


def _set_new_code(user: User) -> str:
    now = timezone.now()
    code = generate_verification_code()
    user.verification_code = code
    user.verification_code_expires_at = now + timedelta(minutes=settings.EMAIL_VERIFICATION_CODE_LIFETIME_MINUTES)
    user.verification_code_sent_at = now
    user.verification_attempts = 0
    user.save(
        update_fields=[
            "verification_code",
            "verification_code_expires_at",
            "verification_code_sent_at",
            "verification_attempts",
        ]
    )
    return code


@transaction.atomic
def register_user(payload: schema.RegisterUserSchema) -> User:
    """Register a new buyer and send them a verification code.

    No session is created until the email is verified.
    """
    logger.info("user_registration_started", email=payload.email)
    if User.objects.filter(email__iexact=payload.email).exists():
        logger.warning("user_registration_duplicate", email=payload.email)
        raise HttpError(400, str(_("A user with this email already exists.")))
    if payload.phone and User.objects.filter(phone=payload.phone).exists():
        logger.warning("user_registration_duplicate_phone", email=payload.email)
        raise HttpError(400, str(_("This phone number is already registered.")))

    first_name, _sep, last_name = (payload.name or "").partition(" ")
    try:
        user = User.objects.create_user(
            email=payload.email,
            password=payload.password,
            name=payload.name or "",
            phone=payload.phone,
            first_name=first_name,
            last_name=last_name.strip(),
        )
    except IntegrityError as e:
        raise HttpError(400, str(_("A user with this email already exists."))) from e
    UserRole.objects.create(user=user, role=Role.BUYER)
    BuyerProfile.objects.create(user=user, first_name=first_name, last_name=last_name.strip())

    code = _set_new_code(user)
    email, display_name = user.email, user.display_name
    transaction.on_commit(lambda: tasks.send_verification_email.delay(email, code, display_name))
    logger.info("user_registration_completed", user_id=str(user.id))
    return user


def verify_email(email: str, code: str) -> User:
    """Check a verification code and mark the email as verified.

    Raises:
        HttpError: 404 for unknown emails, 400 for wrong or expired codes, 429 after too many attempts.
    """
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        raise HttpError(404, str(_("User not found.")))
    if user.email_verified:
        raise HttpError(400, str(_("Email already verified.")))
    if not user.verification_code or not user.verification_code_expires_at:
        raise HttpError(400, str(_("No verification code found. Please request a new one.")))
    if timezone.now() > user.verification_code_expires_at:
        raise HttpError(400, str(_("Verification code has expired. Please request a new one.")))
    if user.verification_attempts >= settings.EMAIL_VERIFICATION_MAX_ATTEMPTS:
        raise HttpError(429, str(_("Too many verification attempts. Please request a new code.")))
    if not secrets.compare_digest(user.verification_code, code):
        User.objects.filter(pk=user.pk).update(verification_attempts=F("verification_attempts") + 1)
        logger.warning("email_verification_code_mismatch", user_id=str(user.id))
        raise HttpError(400, str(_("Invalid verification code.")))

    user.email_verified = True
    user.email_verified_at = timezone.now()
    user.verification_code = ""
    user.verification_code_expires_at = None
    user.verification_attempts = 0
    user.save(
        update_fields=[
            "email_verified",
            "email_verified_at",
            "verification_code",
            "verification_code_expires_at",
            "verification_attempts",
        ]
    )
    logger.info("email_verified", user_id=str(user.id))
    return user


def resend_verification(email: str) -> None:
    """Send a fresh code, at most once per cooldown window.

    Unknown and already verified emails are ignored so the endpoint cannot reveal which accounts exist.
    """
    user = User.objects.filter(email__iexact=email, email_verified=False).first()
    if user is None:
        logger.info("verification_resend_ignored", email=email)
        return
    if user.verification_code_sent_at:
        elapsed = (timezone.now() - user.verification_code_sent_at).total_seconds()
        if elapsed < settings.EMAIL_VERIFICATION_RESEND_COOLDOWN_SECONDS:
            raise HttpError(429, str(_("Please wait before requesting another code.")))
    code = _set_new_code(user)
    email, display_name = user.email, user.display_name
    transaction.on_commit(lambda: tasks.send_verification_email.delay(email, code, display_name))
    logger.info("verification_code_resent", user_id=str(user.id))


def authenticate(email: str, password: str) -> User:
    """Check credentials and return the user.

    Failed attempts are counted; the account is locked for a while once the limit is reached.

    Raises:
        HttpError: 401 for unknown emails or wrong passwords.
        AccountLockedError: if the account is locked or suspended.
        EmailNotVerifiedError: if the email is not verified yet.
    """
    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.has_usable_password():
        raise HttpError(401, str(_("Invalid email or password.")))
    if user.is_locked() or not user.is_active:
        logger.warning("login_blocked_locked_account", user_id=str(user.id))
        raise AccountLockedError()
    if not user.check_password(password):
        _register_failed_login(user)
        raise HttpError(401, str(_("Invalid email or password.")))
    if not user.email_verified:
        raise EmailNotVerifiedError(user.email)

    user.failed_login_attempts = 0
    user.last_login = timezone.now()
    user.save(update_fields=["failed_login_attempts", "last_login"])
    logger.info("login_succeeded", user_id=str(user.id))
    return user


def _register_failed_login(user: User) -> None:
    User.objects.filter(pk=user.pk).update(failed_login_attempts=F("failed_login_attempts") + 1)
    user.refresh_from_db(fields=["failed_login_attempts"])
    logger.warning("login_failed", user_id=str(user.id), failed_attempts=user.failed_login_attempts)
    if user.failed_login_attempts >= settings.MAX_FAILED_LOGIN_ATTEMPTS:
        user.locked_until = timezone.now() + timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES)
        user.failed_login_attempts = 0
        user.save(update_fields=["locked_until", "failed_login_attempts"])
        logger.warning("account_locked", user_id=str(user.id), locked_until=user.locked_until.isoformat())


@transaction.atomic
def request_organizer(user: User, payload: schema.RequestOrganizerSchema) -> list[str]:
    """Grant the ORGANIZER role and create a pending organizer profile.

    Returns the user's roles afterwards. Calling it again is a no-op.
    """
    _role, created = UserRole.objects.get_or_create(user=user, role=Role.ORGANIZER)
    OrganizerProfile.objects.get_or_create(
        user=user,
        defaults={
            "business_name": payload.business_name or user.name or str(_("My Business")),
            "bio": payload.bio,
            "website": payload.website,
            "phone": payload.phone,
        },
    )
    if created:
        logger.info("organizer_role_granted", user_id=str(user.id))
    return user.role_names()


@transaction.atomic
def update_profile(user: User, payload: schema.ProfileUpdateSchema) -> User:
    """Update the user and their buyer profile with the provided fields."""
    data = payload.model_dump(exclude_unset=True)
    if (phone := data.get("phone")) and User.objects.filter(phone=phone).exclude(pk=user.pk).exists():
        raise HttpError(400, str(_("This phone number is already registered.")))
    user_fields = [key for key in ("name", "phone", "first_name", "last_name") if key in data]
    for key in user_fields:
        setattr(user, key, data[key] if data[key] is not None else ("" if key != "phone" else None))
    if user_fields:
        user.save(update_fields=user_fields)

    profile, _created = BuyerProfile.objects.get_or_create(user=user)
    profile_fields = [key for key in ("first_name", "last_name", "city") if data.get(key) is not None]
    for key in profile_fields:
        setattr(profile, key, data[key])
    if profile_fields:
        profile.save()
    logger.info("profile_updated", user_id=str(user.id), fields=user_fields + profile_fields)
    return user


def update_organizer_profile(
    profile: OrganizerProfile, payload: schema.OrganizerProfileUpdateSchema
) -> OrganizerProfile:
    """Update an organizer's public profile."""
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(profile, key, value)
    profile.save()
    return profile


def get_organizer_profile(user: User) -> OrganizerProfile:
    """Return the caller's organizer profile.

    Raises:
        HttpError: 404 if the user never requested organizer access.
    """
    profile = OrganizerProfile.objects.filter(user=user).first()
    if profile is None:
        raise HttpError(404, str(_("Organizer profile not found.")))
    return t.cast(OrganizerProfile, profile)
