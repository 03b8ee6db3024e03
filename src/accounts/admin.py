"""Admin interface for accounts app."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import BuyerProfile, OrganizerProfile, User, UserRole


class UserRoleInline(admin.TabularInline):  # type: ignore[type-arg]
    model = UserRole
    fk_name = "user"
    extra = 0
    fields = ["role", "granted_by", "created_at"]
    readonly_fields = ["created_at"]


class BuyerProfileInline(admin.StackedInline):  # type: ignore[type-arg]
    model = BuyerProfile
    extra = 0
    can_delete = False


@admin.register(User)
class UserAdmin(BaseUserAdmin):  # type: ignore[type-arg]
    ordering = ["email"]
    list_display = ["email", "name", "phone", "email_verified", "is_active", "locked_until", "date_joined"]
    list_filter = ["email_verified", "is_active", "is_staff", "roles__role"]
    search_fields = ["email", "name", "phone"]
    readonly_fields = ["date_joined", "last_login", "email_verified_at"]
    inlines = [UserRoleInline, BuyerProfileInline]
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("name", "first_name", "last_name", "phone")}),
        ("Verification", {"fields": ("email_verified", "email_verified_at")}),
        ("Security", {"fields": ("failed_login_attempts", "locked_until")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = ((None, {"classes": ("wide",), "fields": ("email", "password1", "password2")}),)


@admin.register(OrganizerProfile)
class OrganizerProfileAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["business_name", "user", "verification_status", "verified_at", "created_at"]
    list_filter = ["verification_status"]
    search_fields = ["business_name", "user__email"]
    raw_id_fields = ["user"]
