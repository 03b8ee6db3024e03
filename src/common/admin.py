from django.contrib import admin
from solo.admin import SingletonModelAdmin

from . import models


@admin.register(models.PlatformSettings)
class PlatformSettingsAdmin(SingletonModelAdmin):  # type: ignore[misc]
    readonly_fields = ["updated_at"]
    fieldsets = (
        (
            "Fees",
            {
                "fields": (
                    "platform_fee_percent",
                    "processing_fee_percent",
                    "processing_fee_fixed",
                    "free_tickets_threshold",
                )
            },
        ),
        ("Payouts", {"fields": ("minimum_payout", "payout_hold_days")}),
        ("URLs & Emails", {"fields": ("live_emails", "frontend_base_url", "internal_catchall_email")}),
        ("Timestamps", {"fields": ("updated_at",)}),
    )


@admin.register(models.EmailLog)
class EmailLogAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["to", "subject", "sent_at", "test_only"]
    list_filter = ["test_only", "sent_at"]
    search_fields = ["to", "subject"]
    readonly_fields = ["to", "subject", "sent_at", "test_only", "body", "html"]
    exclude = ["compressed_body", "compressed_html"]
