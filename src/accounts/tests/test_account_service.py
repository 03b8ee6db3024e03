import typing as t
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.conf import settings
from django.core import mail
from django.utils import timezone
from freezegun import freeze_time
from ninja.errors import HttpError

from accounts import schema
from accounts.exceptions import AccountLockedError, EmailNotVerifiedError
from accounts.models import OrganizerProfile, Role, User
from accounts.service import account as account_service

pytestmark = pytest.mark.django_db


@pytest.fixture
def register_payload() -> schema.RegisterUserSchema:
    return schema.RegisterUserSchema(
        email="New.User@Example.com", password="a-strong-password", name="New User", phone="08031234567"
    )


class TestRegisterUser:
    @patch("accounts.service.account.tasks.send_verification_email")
    def test_creates_unverified_buyer_and_sends_code(
        self,
        mock_send: MagicMock,
        register_payload: schema.RegisterUserSchema,
        django_capture_on_commit_callbacks: t.Any,
    ) -> None:
        with django_capture_on_commit_callbacks() as callbacks:
            user = account_service.register_user(register_payload)

        mock_send.delay.assert_not_called()
        assert len(callbacks) == 1
        callbacks[0]()

        assert user.email == "new.user@example.com"
        assert user.email_verified is False
        assert user.first_name == "New"
        assert user.last_name == "User"
        assert user.phone == "+2348031234567"
        assert user.role_names() == [Role.BUYER]
        assert hasattr(user, "buyer_profile")
        assert len(user.verification_code) == 6
        mock_send.delay.assert_called_once_with(user.email, user.verification_code, user.display_name)

    def test_verification_email_is_sent(
        self, register_payload: schema.RegisterUserSchema, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):
            user = account_service.register_user(register_payload)

        assert len(mail.outbox) == 1
        assert user.verification_code in mail.outbox[0].body

    @patch("accounts.service.account.tasks.send_verification_email")
    def test_duplicate_email_is_rejected(
        self, mock_send: MagicMock, register_payload: schema.RegisterUserSchema, buyer: User
    ) -> None:
        payload = register_payload.model_copy(update={"email": "BUYER@example.com", "phone": None})

        with pytest.raises(HttpError) as exc_info:
            account_service.register_user(payload)

        assert exc_info.value.status_code == 400
        mock_send.delay.assert_not_called()

    @patch("accounts.service.account.tasks.send_verification_email")
    def test_duplicate_phone_is_rejected(
        self, mock_send: MagicMock, register_payload: schema.RegisterUserSchema, buyer: User
    ) -> None:
        buyer.phone = "+2348031234567"
        buyer.save()

        with pytest.raises(HttpError) as exc_info:
            account_service.register_user(register_payload)

        assert exc_info.value.status_code == 400
        assert "phone" in str(exc_info.value.message)


@pytest.fixture
def unverified_user(user_factory: t.Any) -> User:
    user = user_factory(Role.BUYER, email="pending@example.com", email_verified=False)
    user.verification_code = "123456"
    user.verification_code_expires_at = timezone.now() + timedelta(minutes=15)
    user.verification_code_sent_at = timezone.now()
    user.save()
    return t.cast(User, user)


class TestVerifyEmail:
    def test_correct_code_verifies(self, unverified_user: User) -> None:
        user = account_service.verify_email("PENDING@example.com", "123456")

        assert user.email_verified is True
        assert user.email_verified_at is not None
        assert user.verification_code == ""

    def test_wrong_code_counts_attempt(self, unverified_user: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.verify_email(unverified_user.email, "654321")

        assert exc_info.value.status_code == 400
        unverified_user.refresh_from_db()
        assert unverified_user.verification_attempts == 1
        assert unverified_user.email_verified is False

    def test_too_many_attempts(self, unverified_user: User) -> None:
        unverified_user.verification_attempts = settings.EMAIL_VERIFICATION_MAX_ATTEMPTS
        unverified_user.save()

        with pytest.raises(HttpError) as exc_info:
            account_service.verify_email(unverified_user.email, "123456")

        assert exc_info.value.status_code == 429

    def test_expired_code(self, unverified_user: User) -> None:
        with freeze_time(timezone.now() + timedelta(minutes=16)):
            with pytest.raises(HttpError) as exc_info:
                account_service.verify_email(unverified_user.email, "123456")

        assert exc_info.value.status_code == 400
        assert "expired" in str(exc_info.value.message)

    def test_unknown_email(self) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.verify_email("nobody@example.com", "123456")

        assert exc_info.value.status_code == 404

    def test_already_verified(self, buyer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.verify_email(buyer.email, "123456")

        assert exc_info.value.status_code == 400


class TestResendVerification:
    @patch("accounts.service.account.tasks.send_verification_email")
    def test_cooldown(self, mock_send: MagicMock, unverified_user: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.resend_verification(unverified_user.email)

        assert exc_info.value.status_code == 429
        mock_send.delay.assert_not_called()

    @patch("accounts.service.account.tasks.send_verification_email")
    def test_new_code_after_cooldown(
        self, mock_send: MagicMock, unverified_user: User, django_capture_on_commit_callbacks: t.Any
    ) -> None:
        later = timezone.now() + timedelta(seconds=settings.EMAIL_VERIFICATION_RESEND_COOLDOWN_SECONDS + 1)
        with freeze_time(later), django_capture_on_commit_callbacks(execute=True):
            account_service.resend_verification(unverified_user.email)

        unverified_user.refresh_from_db()
        mock_send.delay.assert_called_once_with(
            unverified_user.email, unverified_user.verification_code, unverified_user.display_name
        )

    @patch("accounts.service.account.tasks.send_verification_email")
    def test_unknown_email_is_ignored(self, mock_send: MagicMock) -> None:
        account_service.resend_verification("nobody@example.com")

        mock_send.delay.assert_not_called()


class TestAuthenticate:
    def test_success_resets_failed_attempts(self, buyer: User) -> None:
        buyer.failed_login_attempts = 3
        buyer.save()

        user = account_service.authenticate("Buyer@Example.com", "strong-password-123!")

        assert user == buyer
        user.refresh_from_db()
        assert user.failed_login_attempts == 0
        assert user.last_login is not None

    def test_wrong_password(self, buyer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.authenticate(buyer.email, "wrong")

        assert exc_info.value.status_code == 401
        buyer.refresh_from_db()
        assert buyer.failed_login_attempts == 1

    def test_lockout_after_max_attempts(self, buyer: User) -> None:
        for _attempt in range(settings.MAX_FAILED_LOGIN_ATTEMPTS):
            with pytest.raises(HttpError):
                account_service.authenticate(buyer.email, "wrong")

        buyer.refresh_from_db()
        assert buyer.is_locked()
        with pytest.raises(AccountLockedError):
            account_service.authenticate(buyer.email, "strong-password-123!")

    def test_lock_expires(self, buyer: User) -> None:
        buyer.locked_until = timezone.now() + timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES)
        buyer.save()

        with freeze_time(timezone.now() + timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES + 1)):
            assert account_service.authenticate(buyer.email, "strong-password-123!") == buyer

    def test_unverified_email(self, unverified_user: User) -> None:
        with pytest.raises(EmailNotVerifiedError) as exc_info:
            account_service.authenticate(unverified_user.email, "strong-password-123!")

        assert exc_info.value.email == unverified_user.email

    def test_unknown_email(self) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.authenticate("nobody@example.com", "whatever")

        assert exc_info.value.status_code == 401


class TestRequestOrganizer:
    def test_grants_role_and_creates_pending_profile(self, buyer: User) -> None:
        roles = account_service.request_organizer(buyer, schema.RequestOrganizerSchema(business_name="Ada Events"))

        assert roles == [Role.BUYER, Role.ORGANIZER]
        profile = OrganizerProfile.objects.get(user=buyer)
        assert profile.business_name == "Ada Events"
        assert profile.verification_status == OrganizerProfile.VerificationStatus.PENDING

    def test_is_idempotent(self, organizer: User) -> None:
        roles = account_service.request_organizer(organizer, schema.RequestOrganizerSchema(business_name="Other"))

        assert roles == [Role.BUYER, Role.ORGANIZER]
        assert OrganizerProfile.objects.filter(user=organizer).count() == 1
        assert organizer.organizer_profile.business_name != "Other"


class TestUpdateProfile:
    def test_updates_user_and_buyer_profile(self, buyer: User) -> None:
        payload = schema.ProfileUpdateSchema(name="Ada Lovelace", city="Abuja", phone="0803 123 4567")

        user = account_service.update_profile(buyer, payload)

        user.refresh_from_db()
        assert user.name == "Ada Lovelace"
        assert user.phone == "+2348031234567"
        assert user.buyer_profile.city == "Abuja"

    def test_phone_taken(self, buyer: User, organizer: User) -> None:
        organizer.phone = "+2348031234567"
        organizer.save()

        with pytest.raises(HttpError) as exc_info:
            account_service.update_profile(buyer, schema.ProfileUpdateSchema(phone="08031234567"))

        assert exc_info.value.status_code == 400


class TestGetOrganizerProfile:
    def test_missing_profile(self, buyer: User) -> None:
        with pytest.raises(HttpError) as exc_info:
            account_service.get_organizer_profile(buyer)

        assert exc_info.value.status_code == 404
