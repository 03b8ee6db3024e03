import typing as t
import uuid
from datetime import datetime

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone

from accounts.validators import normalize_phone_number, validate_phone_number
from common.models import TimeStampedModel


class Role(models.TextChoices):
    BUYER = "BUYER", "Buyer"
    ORGANIZER = "ORGANIZER", "Organizer"
    ADMIN = "ADMIN", "Admin"


class UserQuerySet(models.QuerySet["User"]):
    def with_role(self, role: str) -> "UserQuerySet":
        """Users holding a role."""
        return self.filter(roles__role=role).distinct()


class UserManager(BaseUserManager["User"]):
    use_in_migrations = True

    def get_queryset(self) -> UserQuerySet:
        """Get queryset for User."""
        return UserQuerySet(self.model, using=self._db)

    def with_role(self, role: str) -> UserQuerySet:
        """Users holding a role."""
        return self.get_queryset().with_role(role)

    def create_user(self, email: str, password: str | None = None, **extra_fields: t.Any) -> "User":
        """Create a user identified by email."""
        if not email:
            raise ValueError("The email must be set.")
        user = self.model(email=self.normalize_email(email).lower(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: t.Any) -> "User":
        """Create a superuser that also holds the ADMIN role."""
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("email_verified", True)
        user = self.create_user(email, password, **extra_fields)
        UserRole.objects.get_or_create(user=user, role=Role.ADMIN)
        return user


class User(AbstractUser):
    """Platform user. The email address is the login identifier."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None  # type: ignore[assignment]
    email = models.EmailField(unique=True)
    phone = models.CharField(
        max_length=20, unique=True, null=True, blank=True, validators=[validate_phone_number], help_text="Phone number"
    )
    name = models.CharField(max_length=255, blank=True, db_index=True)
    email_verified = models.BooleanField(default=False)
    email_verified_at = models.DateTimeField(null=True, blank=True)
    verification_code = models.CharField(max_length=6, blank=True, default="", editable=False)
    verification_code_expires_at = models.DateTimeField(null=True, blank=True, editable=False)
    verification_code_sent_at = models.DateTimeField(null=True, blank=True, editable=False)
    verification_attempts = models.PositiveSmallIntegerField(default=0, editable=False)
    failed_login_attempts = models.PositiveIntegerField(default=0)
    locked_until = models.DateTimeField(null=True, blank=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: list[str] = []

    objects = UserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["email"]

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Normalize the phone number before saving."""
        if self.phone:
            self.phone = normalize_phone_number(self.phone)
        else:
            self.phone = None
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.email

    @property
    def display_name(self) -> str:
        """The name, falling back to the local part of the email."""
        return self.name or self.get_full_name() or self.email.split("@")[0]

    def role_names(self) -> list[str]:
        """Names of all roles this user holds."""
        return list(self.roles.order_by("role").values_list("role", flat=True))

    def has_role(self, role: str) -> bool:
        """Whether the user holds a role."""
        return self.roles.filter(role=role).exists()

    def is_locked(self, now: datetime | None = None) -> bool:
        """Whether the account is locked out (too many failed logins or suspended by an admin)."""
        now = now or timezone.now()
        return self.locked_until is not None and self.locked_until > now


class UserRole(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="roles")
    role = models.CharField(max_length=20, choices=Role.choices, db_index=True)
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [models.UniqueConstraint(fields=["user", "role"], name="unique_user_role")]

    def __str__(self) -> str:
        return f"{self.user_id}: {self.role}"


class BuyerProfile(TimeStampedModel):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="buyer_profile")
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    city = models.CharField(max_length=100, blank=True)

    def __str__(self) -> str:
        return f"Buyer profile of {self.user_id}"


class OrganizerProfile(TimeStampedModel):
    class VerificationStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        VERIFIED = "VERIFIED", "Verified"
        SUSPENDED = "SUSPENDED", "Suspended"

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="organizer_profile")
    business_name = models.CharField(max_length=255)
    bio = models.TextField(blank=True)
    website = models.URLField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    verification_status = models.CharField(
        max_length=20, choices=VerificationStatus.choices, default=VerificationStatus.PENDING, db_index=True
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    payout_details = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return self.business_name

    @property
    def is_suspended(self) -> bool:
        """Suspended organizers cannot publish or withdraw."""
        return self.verification_status == self.VerificationStatus.SUSPENDED

    @property
    def recipient_code(self) -> str | None:
        """The payment processor transfer recipient, once a bank account is configured."""
        return t.cast(str | None, (self.payout_details or {}).get("recipient_code"))
